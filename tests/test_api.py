"""Tests for the HTTP API — analysis, backtest, auto-trade and live-rate endpoints."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from fxbands.api.routers import configure_routers
from fxbands.data.models import RateQuote
from fxbands.data.provider import FixturePriceProvider
from fxbands.engine import AnalysisEngine
from fxbands.errors import DataUnavailable, RateFeedError
from fxbands.main import app

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _round_trip() -> list[float]:
    closes = [1.00 if i % 2 == 0 else 1.01 for i in range(40)]
    closes[24] = 0.97
    closes[34] = 1.05
    return closes


def _make_engine() -> AnalysisEngine:
    return AnalysisEngine(FixturePriceProvider({
        "EUR/USD": _round_trip(),
        "GBP/USD": [1.25] * 25,
        "USD/CHF": _round_trip()[:25],
        "AUD/USD": [0.65] * 10,
    }))


def _make_rates_client():
    rates_client = AsyncMock()
    rates_client.fetch_pair_quote.return_value = {
        "pair": "EUR/USD",
        "rate": 1.0961,
        "last_update": "Fri, 10 Jan 2025 00:00:01 +0000",
    }
    rates_client.fetch_latest.return_value = {"JPY": 157.45, "EUR": 0.9123}
    return rates_client


def _make_live_rates(quotes=None):
    live = MagicMock()
    live.all_quotes.return_value = quotes or []
    live.status.return_value = {
        "is_running": True,
        "last_update": "2025-01-10T12:00:00+00:00",
        "error_count": 0,
        "update_interval": 30.0,
        "tracked_pairs": 20,
    }
    return live


def _auto_trade(body: dict, role="institution"):
    headers = {"X-User-Role": role} if role else {}
    return client.post("/api/auto-trade/evaluate", json=body, headers=headers)


# ── Bollinger bands ──────────────────────────────────────────────────────


class TestBollingerEndpoint:

    def test_returns_full_payload(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/EUR/USD")
        assert resp.status_code == 200
        data = resp.json()
        assert data["currency_pair"] == "EUR/USD"
        assert len(data["historical_data"]) == 40
        assert len(data["bollinger_bands"]) == 21
        assert len(data["signals"]) == 21
        band = data["bollinger_bands"][0]
        assert set(band) == {"index", "middle", "upper", "lower", "std_dev"}
        assert data["current_signal"] == data["signals"][-1]
        assert set(data["analysis"]) == {
            "trend", "volatility", "position", "recommendation",
        }

    def test_lowercase_pair_and_params(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/eur/usd?period=10&std_dev=1.5&points=30")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["historical_data"]) == 30
        assert len(data["bollinger_bands"]) == 21

    def test_unknown_pair_404(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/NZD/CHF")
        assert resp.status_code == 404
        assert "error" in resp.json()

    def test_insufficient_data_422(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/AUD/USD")
        assert resp.status_code == 422
        assert "Need at least 20" in resp.json()["error"]

    def test_invalid_pair_400(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/EU/USD")
        assert resp.status_code == 400

    def test_invalid_period_rejected(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/bollinger-bands/EUR/USD?period=1")
        assert resp.status_code == 422

    def test_no_engine_503(self):
        configure_routers()
        resp = client.get("/api/bollinger-bands/EUR/USD")
        assert resp.status_code == 503


# ── Backtest ─────────────────────────────────────────────────────────────


class TestBacktestEndpoint:

    def test_round_trip_report(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/backtest/EUR/USD?days=90&balance=10000")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["currency_pair"] == "EUR/USD"
        assert [t["type"] for t in data["trades"]] == ["BUY", "SELL"]
        assert data["metrics"]["total_trades"] == 2
        assert data["metrics"]["winning_trades"] == 1
        assert data["metrics"]["win_rate_pct"] == 100.0
        assert data["trades"][0]["signal"]["signal"] == "STRONG_BUY"
        assert data["final_balance"] > data["initial_balance"]

    def test_flat_series_zero_trades(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/backtest/GBP/USD")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["trades"] == []
        assert data["total_return_pct"] == 0.0

    def test_short_history_422(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/backtest/AUD/USD")
        assert resp.status_code == 422

    def test_invalid_position_size(self):
        configure_routers(engine=_make_engine())
        resp = client.get("/api/backtest/EUR/USD?position_size=1.5")
        assert resp.status_code == 422


# ── Auto-trade ───────────────────────────────────────────────────────────


class TestAutoTradeEndpoint:

    def test_requires_role_header(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"currency_pair": "USD/CHF"}, role=None)
        assert resp.status_code == 401

    def test_rejects_other_roles(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"currency_pair": "USD/CHF"}, role="retail")
        assert resp.status_code == 403

    def test_buy_recommendation(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({
            "currency_pair": "USD/CHF",
            "max_risk": 2500,
            "min_confidence": 0,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["currency_pair"] == "USD/CHF"
        assert data["should_trade"] is True
        assert data["direction"] == "buy"
        assert data["max_trade_amount"] == 2500.0
        assert data["signal"]["signal"] == "STRONG_BUY"
        assert data["stop_loss_price"] < data["signal"]["price"]

    def test_neutral_signal_declined(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"currency_pair": "GBP/USD", "min_confidence": 0})
        assert resp.status_code == 200
        data = resp.json()
        assert data["should_trade"] is False
        assert "NEUTRAL" in data["reason"]

    def test_validation_errors(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"max_risk": -1, "min_confidence": 150})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert "currency_pair" in error
        assert "max_risk" in error
        assert "min_confidence" in error

    def test_non_numeric_fields(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"currency_pair": "EUR/USD", "max_risk": "lots"})
        assert resp.status_code == 400

    def test_unknown_pair_404(self):
        configure_routers(engine=_make_engine())
        resp = _auto_trade({"currency_pair": "NZD/CHF"})
        assert resp.status_code == 404


# ── Live rates ───────────────────────────────────────────────────────────


class TestForexEndpoints:

    def test_latest_pair(self):
        rates_client = _make_rates_client()
        configure_routers(rates_client=rates_client)
        resp = client.get("/api/forex/latest/eur/usd")
        assert resp.status_code == 200
        assert resp.json()["rate"] == 1.0961
        rates_client.fetch_pair_quote.assert_awaited_once_with("EUR", "USD")

    def test_latest_feed_error_502(self):
        rates_client = _make_rates_client()
        rates_client.fetch_pair_quote.side_effect = RateFeedError("down")
        configure_routers(rates_client=rates_client)
        resp = client.get("/api/forex/latest/EUR/USD")
        assert resp.status_code == 502

    def test_latest_unknown_currency_404(self):
        rates_client = _make_rates_client()
        rates_client.fetch_pair_quote.side_effect = DataUnavailable("XXX")
        configure_routers(rates_client=rates_client)
        resp = client.get("/api/forex/latest/XXX/USD")
        assert resp.status_code == 404

    def test_latest_without_client_503(self):
        configure_routers()
        resp = client.get("/api/forex/latest/EUR/USD")
        assert resp.status_code == 503

    def test_all_rates(self):
        configure_routers(rates_client=_make_rates_client())
        resp = client.get("/api/forex/all?base=usd")
        assert resp.status_code == 200
        data = resp.json()
        assert data["base"] == "USD"
        assert data["rates"] == [
            {"pair": "USD/EUR", "rate": 0.9123},
            {"pair": "USD/JPY", "rate": 157.45},
        ]

    def test_quotes_and_status(self):
        quote = RateQuote(
            pair="EUR/USD",
            bid=1.09609,
            ask=1.09611,
            mid=1.0961,
            timestamp=datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc),
        )
        configure_routers(live_rates=_make_live_rates([quote]))

        resp = client.get("/api/forex/quotes")
        assert resp.status_code == 200
        quotes = resp.json()["quotes"]
        assert quotes[0]["pair"] == "EUR/USD"
        assert quotes[0]["timestamp"] == "2025-01-10T12:00:00+00:00"

        resp = client.get("/api/forex/status")
        assert resp.json()["status"]["is_running"] is True

    def test_no_live_service(self):
        configure_routers()
        assert client.get("/api/forex/quotes").json() == {"quotes": []}
        assert client.get("/api/forex/status").json() == {"status": None}


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
