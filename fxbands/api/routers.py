"""Internal API routers — /api/bollinger-bands, /api/backtest, /api/auto-trade, /api/forex.

No business logic. Delegates to the analysis engine, the rate client and
the live rate service, and maps core errors to HTTP status codes.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse

from fxbands.backtest.models import BacktestReport
from fxbands.data.models import RateQuote, normalize_pair
from fxbands.errors import DataUnavailable, InsufficientData, RateFeedError
from fxbands.strategy.models import Signal

logger = logging.getLogger("fxbands.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine = None        # AnalysisEngine, set via configure_routers()
_rates_client = None  # ExchangeRateClient, set via configure_routers()
_live_rates = None    # LiveRateService, set via configure_routers()

AUTO_TRADE_ROLES = ("institution",)


def configure_routers(engine=None, rates_client=None, live_rates=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: An ``AnalysisEngine`` (or duck-type for tests).
        rates_client: An ``ExchangeRateClient`` for live pair lookups.
        live_rates: A ``LiveRateService`` for cached quotes and status.
    """
    global _engine, _rates_client, _live_rates  # noqa: PLW0603
    _engine = engine
    _rates_client = rates_client
    _live_rates = live_rates


# ── Helpers ──────────────────────────────────────────────────────────────


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _error_response(exc: Exception) -> JSONResponse:
    """Map a core error to its HTTP status."""
    if isinstance(exc, DataUnavailable):
        return _error(404, str(exc))
    if isinstance(exc, InsufficientData):
        return _error(422, str(exc))
    if isinstance(exc, RateFeedError):
        return _error(502, str(exc))
    return _error(400, str(exc))


def _pair_or_error(base: str, quote: str) -> tuple[Optional[str], Optional[JSONResponse]]:
    try:
        return normalize_pair(f"{base}/{quote}"), None
    except ValueError:
        return None, _error(400, "Invalid currency pair")


def _check_role(role: Optional[str], allowed: tuple[str, ...]) -> Optional[JSONResponse]:
    """Capability check; the role header is set by the upstream auth layer."""
    if not role:
        return _error(401, "Authentication required")
    if role not in allowed:
        return _error(403, "Insufficient permissions for this action")
    return None


def signal_to_dict(sig: Signal) -> dict:
    return {
        "index": sig.index,
        "signal": sig.signal.value,
        "price": sig.price,
        "strength": sig.strength,
        "confidence": sig.confidence,
        "position": round(sig.position, 4),
        "reason": sig.reason,
        "date": sig.timestamp.isoformat() if sig.timestamp else None,
    }


def report_to_dict(report: BacktestReport) -> dict:
    return {
        "currency_pair": report.currency_pair,
        "period_days": report.period_days,
        "initial_balance": report.initial_balance,
        "final_balance": round(report.final_balance, 2),
        "total_return_pct": round(report.total_return_pct, 4),
        "trades": [
            {
                "type": t.type.value,
                "price": t.price,
                "quantity": t.quantity,
                "amount": round(t.amount, 2),
                "balance_after": round(t.balance_after, 2),
                "date": t.date.isoformat() if t.date else None,
                "signal": signal_to_dict(t.triggering_signal),
            }
            for t in report.trades
        ],
        "metrics": {
            "total_trades": report.total_trades,
            "winning_trades": report.winning_trades,
            "losing_trades": report.losing_trades,
            "win_rate_pct": round(report.win_rate_pct, 2),
            "max_drawdown_pct": round(report.max_drawdown_pct, 4),
            "sharpe_ratio": round(report.sharpe_ratio, 4),
            "net_pnl": round(report.net_pnl, 2),
            "open_position": report.open_position,
        },
        "equity_curve": [round(v, 2) for v in report.equity_curve],
    }


def quote_to_dict(quote: RateQuote) -> dict:
    return {
        "pair": quote.pair,
        "bid": quote.bid,
        "ask": quote.ask,
        "mid": quote.mid,
        "timestamp": quote.timestamp.isoformat(),
    }


# ── Analysis endpoints ───────────────────────────────────────────────────


@router.get("/api/bollinger-bands/{base}/{quote}")
async def get_bollinger_bands(
    base: str,
    quote: str,
    period: int = Query(default=20, ge=2, le=200),
    std_dev: float = Query(default=2.0, ge=0.0, le=5.0),
    points: Optional[int] = Query(default=None, ge=1, le=5000),
):
    """Bands, signals and market summary for a currency pair."""
    pair, err = _pair_or_error(base, quote)
    if err is not None:
        return err
    if _engine is None:
        return _error(503, "Analysis engine not configured")

    try:
        result = await _engine.analyze(pair, period, std_dev, points=points)
    except (DataUnavailable, InsufficientData) as exc:
        return _error_response(exc)

    return {
        "currency_pair": result.currency_pair,
        "historical_data": [
            {"date": p.timestamp.isoformat(), "close": p.close}
            for p in result.prices
        ],
        "bollinger_bands": [asdict(b) for b in result.bands],
        "signals": [signal_to_dict(s) for s in result.signals],
        "current_signal": signal_to_dict(result.current_signal),
        "analysis": asdict(result.analysis),
    }


@router.get("/api/backtest/{base}/{quote}")
async def get_backtest(
    base: str,
    quote: str,
    days: int = Query(default=90, ge=1, le=3650),
    balance: float = Query(default=10_000.0, gt=0),
    min_strength: float = Query(default=70, ge=0, le=100),
    position_size: float = Query(default=0.1, gt=0, le=1),
):
    """Backtest the Bollinger strategy over the last *days*."""
    pair, err = _pair_or_error(base, quote)
    if err is not None:
        return err
    if _engine is None:
        return _error(503, "Analysis engine not configured")

    try:
        report = await _engine.backtest(
            pair,
            days=days,
            initial_balance=balance,
            min_strength=min_strength,
            position_size_fraction=position_size,
        )
    except (DataUnavailable, InsufficientData) as exc:
        return _error_response(exc)

    return {"success": True, "data": report_to_dict(report)}


@router.post("/api/auto-trade/evaluate")
async def post_auto_trade_evaluate(
    body: dict,
    x_user_role: Optional[str] = Header(default=None),
):
    """Evaluate whether the current signal should fire an automated trade.

    Body: ``currency_pair``, ``max_risk``, ``min_confidence`` and the
    optional ``stop_loss_pct`` / ``take_profit_pct``.
    """
    denied = _check_role(x_user_role, AUTO_TRADE_ROLES)
    if denied is not None:
        return denied
    if _engine is None:
        return _error(503, "Analysis engine not configured")

    errors = []
    pair = None
    try:
        pair = normalize_pair(str(body.get("currency_pair", "")))
    except ValueError:
        errors.append("currency_pair is required (e.g. EUR/USD)")
    try:
        max_risk = float(body.get("max_risk", 10_000))
        min_confidence = float(body.get("min_confidence", 60))
        stop_loss_pct = float(body.get("stop_loss_pct", 5.0))
        take_profit_pct = float(body.get("take_profit_pct", 10.0))
    except (TypeError, ValueError):
        return _error(400, "Numeric fields must be numbers")

    if max_risk <= 0:
        errors.append("max_risk must be positive")
    if not 0 <= min_confidence <= 100:
        errors.append("min_confidence must be 0–100")
    if not 0 < stop_loss_pct <= 100:
        errors.append("stop_loss_pct must be within (0, 100]")
    if not 0 < take_profit_pct <= 100:
        errors.append("take_profit_pct must be within (0, 100]")
    if errors:
        return JSONResponse(status_code=400, content={"error": "; ".join(errors)})

    try:
        result = await _engine.analyze(pair)
    except (DataUnavailable, InsufficientData) as exc:
        return _error_response(exc)

    rec = _engine.evaluate_auto_trade(
        result.current_signal,
        max_risk=max_risk,
        min_confidence=min_confidence,
        stop_loss_pct=stop_loss_pct,
        take_profit_pct=take_profit_pct,
    )
    logger.info(
        "Auto-trade evaluation for %s: should_trade=%s (%s)",
        pair, rec.should_trade, rec.reason,
    )
    return {
        "currency_pair": pair,
        "should_trade": rec.should_trade,
        "reason": rec.reason,
        "direction": rec.direction,
        "max_trade_amount": rec.max_trade_amount,
        "stop_loss_price": rec.stop_loss_price,
        "take_profit_price": rec.take_profit_price,
        "signal": signal_to_dict(rec.evaluated_signal),
    }


# ── Live rate endpoints ──────────────────────────────────────────────────


@router.get("/api/forex/latest/{base}/{quote}")
async def get_latest_rate(base: str, quote: str):
    """Live conversion rate for one pair from the external feed."""
    pair, err = _pair_or_error(base, quote)
    if err is not None:
        return err
    if _rates_client is None:
        return _error(503, "Rate client not configured")

    base_ccy, quote_ccy = pair.split("/")
    try:
        data = await _rates_client.fetch_pair_quote(base_ccy, quote_ccy)
    except (DataUnavailable, RateFeedError) as exc:
        logger.error("Live price fetch for %s failed: %s", pair, exc)
        return _error_response(exc)
    return data


@router.get("/api/forex/all")
async def get_all_rates(base: str = Query(default="USD", min_length=3, max_length=3)):
    """All conversion rates for one base currency."""
    if _rates_client is None:
        return _error(503, "Rate client not configured")

    base_ccy = base.upper()
    try:
        rates = await _rates_client.fetch_latest(base_ccy)
    except (DataUnavailable, RateFeedError) as exc:
        logger.error("Rate table fetch for %s failed: %s", base_ccy, exc)
        return _error_response(exc)
    return {
        "base": base_ccy,
        "rates": [
            {"pair": f"{base_ccy}/{code}", "rate": rate}
            for code, rate in sorted(rates.items())
        ],
    }


@router.get("/api/forex/quotes")
async def get_live_quotes():
    """Cached bid/ask quotes from the live rate service."""
    if _live_rates is None:
        return {"quotes": []}
    return {"quotes": [quote_to_dict(q) for q in _live_rates.all_quotes()]}


@router.get("/api/forex/status")
async def get_live_status():
    """Live rate service status."""
    if _live_rates is None:
        return {"status": None}
    return {"status": _live_rates.status()}
