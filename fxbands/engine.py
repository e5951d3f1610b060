"""FXBands — analysis engine (entry points).

Connects a price series provider to the Bollinger pipeline:
provider → bands → signals → {market analysis, backtest, auto-trade gate}.
Every call fetches its own series; nothing is shared between calls.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fxbands.backtest.engine import BacktestSimulator
from fxbands.backtest.models import BacktestReport
from fxbands.data.models import PricePoint, normalize_pair
from fxbands.data.provider import PriceSeriesProvider
from fxbands.risk.auto_trade import (
    AutoTradePolicy,
    AutoTradeRecommendation,
    evaluate_auto_trade,
)
from fxbands.strategy.analyzer import analyze_market
from fxbands.strategy.indicators import calculate_bollinger
from fxbands.strategy.models import BandPoint, MarketAnalysis, Signal
from fxbands.strategy.signals import current_signal, generate_signals

logger = logging.getLogger("fxbands")


@dataclass(frozen=True)
class AnalysisResult:
    """Everything ``AnalysisEngine.analyze`` derives for one pair."""

    currency_pair: str
    prices: list[PricePoint]
    bands: list[BandPoint]
    signals: list[Signal]
    current_signal: Signal
    analysis: MarketAnalysis


class AnalysisEngine:
    """Runs analyses and backtests against one price source.

    Args:
        provider: Any ``PriceSeriesProvider``.
    """

    def __init__(self, provider: PriceSeriesProvider) -> None:
        self._provider = provider

    # ── Public API ───────────────────────────────────────────────────────

    async def analyze(
        self,
        currency_pair: str,
        period: int = 20,
        num_std_dev: float = 2.0,
        points: Optional[int] = None,
    ) -> AnalysisResult:
        """Compute bands, signals and the market summary for a pair.

        Raises ``DataUnavailable`` for an unknown pair and
        ``InsufficientData`` when fewer than *period* prices exist.
        """
        pair = normalize_pair(currency_pair)
        prices = await self._provider.get_price_series(pair, points=points)

        bands = calculate_bollinger(prices, period, num_std_dev)
        signals = generate_signals(prices, bands, confidence_window=period)
        analysis = analyze_market(bands, signals, lookback=period)
        current = current_signal(signals)

        logger.info(
            "Analysed %s: %d prices, current %s (strength %d, confidence %d), %s",
            pair, len(prices), current.signal.value, current.strength,
            current.confidence, analysis.trend,
        )
        return AnalysisResult(
            currency_pair=pair,
            prices=prices,
            bands=bands,
            signals=signals,
            current_signal=current,
            analysis=analysis,
        )

    async def backtest(
        self,
        currency_pair: str,
        days: int = 90,
        initial_balance: float = 10_000.0,
        min_strength: float = 70,
        position_size_fraction: float = 0.1,
        period: int = 20,
        num_std_dev: float = 2.0,
    ) -> BacktestReport:
        """Replay Bollinger signals over the last *days* of history.

        Raises ``DataUnavailable`` / ``InsufficientData`` like
        :meth:`analyze`.  A run without trades is a normal report.
        """
        pair = normalize_pair(currency_pair)
        simulator = BacktestSimulator(min_strength, position_size_fraction)
        prices = await self._provider.get_price_series(pair, days=days)

        bands = calculate_bollinger(prices, period, num_std_dev)
        signals = generate_signals(prices, bands, confidence_window=period)
        report = simulator.run(
            prices,
            signals,
            initial_balance=initial_balance,
            currency_pair=pair,
            period_days=days,
        )

        logger.info(
            "Backtest %s over %d days: %d trades, return %.2f%%, "
            "win rate %.1f%%, max drawdown %.2f%%",
            pair, days, report.total_trades, report.total_return_pct,
            report.win_rate_pct, report.max_drawdown_pct,
        )
        return report

    @staticmethod
    def evaluate_auto_trade(
        signal: Signal,
        max_risk: float,
        min_confidence: float,
        stop_loss_pct: float = 5.0,
        take_profit_pct: float = 10.0,
    ) -> AutoTradeRecommendation:
        """Apply a risk policy to *signal*.  Never raises."""
        policy = AutoTradePolicy(
            max_risk=max_risk,
            min_confidence=min_confidence,
            stop_loss_pct=stop_loss_pct,
            take_profit_pct=take_profit_pct,
        )
        return evaluate_auto_trade(signal, policy)
