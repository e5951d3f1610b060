"""Backtest statistics — pure functions for trade-log analysis."""

import math

from fxbands.backtest.models import BacktestTrade, TradeType


def round_trip_pnls(trades: list[BacktestTrade]) -> list[float]:
    """P&L of each closed BUY→SELL pair.

    The log is long-only with a single lot, so every SELL closes the BUY
    immediately before it.
    """
    pnls: list[float] = []
    last_buy: BacktestTrade | None = None
    for trade in trades:
        if trade.type == TradeType.BUY:
            last_buy = trade
        elif last_buy is not None:
            pnls.append(trade.amount - last_buy.amount)
            last_buy = None
    return pnls


def count_winning_trades(trades: list[BacktestTrade]) -> int:
    """Number of SELLs priced above their immediately preceding BUY."""
    wins = 0
    for prev, trade in zip(trades, trades[1:]):
        if (
            trade.type == TradeType.SELL
            and prev.type == TradeType.BUY
            and trade.price > prev.price
        ):
            wins += 1
    return wins


def win_rate_pct(trades: list[BacktestTrade]) -> float:
    """Winning SELLs as a percentage of all SELLs (0.0 with no SELL)."""
    sells = sum(1 for t in trades if t.type == TradeType.SELL)
    if sells == 0:
        return 0.0
    return count_winning_trades(trades) / sells * 100.0


def sharpe_ratio(pnls: list[float]) -> float:
    """Annualised Sharpe ratio from a P&L series.

    Uses sample standard deviation (n − 1).  Returns 0.0 when the series
    has fewer than 2 observations or zero variance.
    """
    n = len(pnls)
    if n < 2:
        return 0.0
    mean = sum(pnls) / n
    variance = sum((p - mean) ** 2 for p in pnls) / (n - 1)
    std = math.sqrt(variance)
    if std == 0:
        return 0.0
    return (mean / std) * math.sqrt(252)
