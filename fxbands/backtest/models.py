"""Backtest data models — trade log entries and the summary report."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from fxbands.strategy.models import Signal


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class BacktestTrade:
    """One simulated fill."""

    type: TradeType
    price: float
    quantity: float
    amount: float
    balance_after: float
    date: Optional[date]
    triggering_signal: Signal


@dataclass(frozen=True)
class BacktestReport:
    """Summary of one backtest replay."""

    currency_pair: str
    period_days: int
    initial_balance: float
    final_balance: float
    total_return_pct: float
    trades: list[BacktestTrade]
    total_trades: int
    winning_trades: int
    win_rate_pct: float
    max_drawdown_pct: float
    losing_trades: int = 0
    net_pnl: float = 0.0
    sharpe_ratio: float = 0.0
    open_position: float = 0.0
    equity_curve: list[float] = field(default_factory=list)
