"""Backtest engine — replays Bollinger signals over historical prices.

Iterates signals chronologically, simulating a long-only single-lot
position with virtual balance.  No real orders are placed.
"""

import logging
from typing import Optional

from fxbands.backtest.models import BacktestReport, BacktestTrade, TradeType
from fxbands.backtest.stats import (
    count_winning_trades,
    round_trip_pnls,
    sharpe_ratio,
    win_rate_pct,
)
from fxbands.data.models import PricePoint
from fxbands.risk.drawdown import DrawdownTracker
from fxbands.strategy.models import Signal

logger = logging.getLogger("fxbands.backtest")


class BacktestSimulator:
    """Simulates signal-driven trading on historical data.

    Args:
        min_strength: Signals must be strictly stronger than this to act.
        position_size_fraction: Fraction of the balance committed per BUY.
    """

    def __init__(
        self,
        min_strength: float = 70,
        position_size_fraction: float = 0.1,
    ) -> None:
        if not 0 <= min_strength <= 100:
            raise ValueError(
                f"min_strength must be within [0, 100], got {min_strength}"
            )
        if not 0 < position_size_fraction <= 1:
            raise ValueError(
                "position_size_fraction must be within (0, 1], "
                f"got {position_size_fraction}"
            )
        self._min_strength = min_strength
        self._fraction = position_size_fraction

    # ── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        prices: list[PricePoint],
        signals: list[Signal],
        initial_balance: float = 10_000.0,
        currency_pair: str = "",
        period_days: int = 0,
    ) -> BacktestReport:
        """Execute a full replay.

        Args:
            prices: Ascending price series the signals are aligned to.
            signals: Output of ``generate_signals`` for *prices*.
            initial_balance: Starting virtual balance.
            currency_pair: Label copied into the report.
            period_days: Requested span, copied into the report.

        Returns:
            ``BacktestReport``.  An open position at the end is marked to
            the last price, not closed.
        """
        if initial_balance <= 0:
            raise ValueError(
                f"initial_balance must be positive, got {initial_balance}"
            )

        balance = initial_balance
        position = 0.0
        tracker = DrawdownTracker(initial_balance)
        trades: list[BacktestTrade] = []
        equity_curve: list[float] = []

        for sig in signals:
            kind = sig.signal
            acts = sig.strength > self._min_strength

            # 1. Open a position when flat
            if kind.is_buy and acts and position == 0:
                amount = balance * self._fraction
                quantity = amount / sig.price
                position += quantity
                balance -= amount
                trades.append(
                    BacktestTrade(
                        type=TradeType.BUY,
                        price=sig.price,
                        quantity=quantity,
                        amount=amount,
                        balance_after=balance,
                        date=sig.timestamp,
                        triggering_signal=sig,
                    )
                )

            # 2. Close the whole position when long
            elif kind.is_sell and acts and position > 0:
                amount = position * sig.price
                balance += amount
                trades.append(
                    BacktestTrade(
                        type=TradeType.SELL,
                        price=sig.price,
                        quantity=position,
                        amount=amount,
                        balance_after=balance,
                        date=sig.timestamp,
                        triggering_signal=sig,
                    )
                )
                position = 0.0

            tracker.update(balance)
            equity_curve.append(balance + position * sig.price)

        last_price = self._last_price(prices, signals)
        final_balance = balance + position * last_price if position else balance
        total_return_pct = (final_balance - initial_balance) / initial_balance * 100.0

        winning = count_winning_trades(trades)
        sells = sum(1 for t in trades if t.type == TradeType.SELL)

        report = BacktestReport(
            currency_pair=currency_pair,
            period_days=period_days,
            initial_balance=initial_balance,
            final_balance=final_balance,
            total_return_pct=total_return_pct,
            trades=trades,
            total_trades=len(trades),
            winning_trades=winning,
            win_rate_pct=win_rate_pct(trades),
            max_drawdown_pct=tracker.max_drawdown_pct,
            losing_trades=sells - winning,
            net_pnl=final_balance - initial_balance,
            sharpe_ratio=sharpe_ratio(round_trip_pnls(trades)),
            open_position=position,
            equity_curve=equity_curve,
        )
        logger.debug(
            "Replayed %d signal(s): %d trade(s), return %.2f%%",
            len(signals), report.total_trades, report.total_return_pct,
        )
        return report

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _last_price(
        prices: list[PricePoint], signals: list[Signal],
    ) -> float:
        """Last observed price, preferring the price series."""
        if prices:
            return prices[-1].close
        last: Optional[Signal] = signals[-1] if signals else None
        return last.price if last is not None else 0.0
