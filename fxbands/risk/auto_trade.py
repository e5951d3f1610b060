"""Automated-trade gate — applies a risk policy to the current signal.

Pure functions, no I/O.  Only directional signals with enough confidence
pass; the recommendation then carries protective price levels derived
from the policy's stop-loss / take-profit percentages.
"""

from dataclasses import dataclass
from typing import Optional

from fxbands.strategy.models import Signal, SignalType


@dataclass(frozen=True)
class AutoTradePolicy:
    """Caller-supplied risk policy for automated trading."""

    max_risk: float  # maximum amount committed per trade
    min_confidence: float  # 0..100
    stop_loss_pct: float = 5.0
    take_profit_pct: float = 10.0


@dataclass(frozen=True)
class AutoTradeRecommendation:
    """Whether an automated trade should fire for the evaluated signal."""

    should_trade: bool
    reason: str
    evaluated_signal: Signal
    direction: Optional[str] = None  # "buy" or "sell"
    max_trade_amount: float = 0.0
    stop_loss_price: Optional[float] = None
    take_profit_price: Optional[float] = None


def evaluate_auto_trade(
    signal: Signal, policy: AutoTradePolicy,
) -> AutoTradeRecommendation:
    """Decide whether *signal* should trigger an automated trade.

    ``should_trade`` is true when the signal is directional (not
    NEUTRAL) and its confidence meets ``policy.min_confidence``.  The
    reason names the first failing condition.
    """
    if signal.signal == SignalType.NEUTRAL:
        return AutoTradeRecommendation(
            should_trade=False,
            reason="Signal is NEUTRAL — no directional edge",
            evaluated_signal=signal,
        )

    if signal.confidence < policy.min_confidence:
        return AutoTradeRecommendation(
            should_trade=False,
            reason=(
                f"Confidence {signal.confidence} below minimum "
                f"{policy.min_confidence:g}"
            ),
            evaluated_signal=signal,
        )

    direction = "buy" if signal.signal.is_buy else "sell"
    sl, tp = protective_levels(
        signal.price, direction, policy.stop_loss_pct, policy.take_profit_pct,
    )
    return AutoTradeRecommendation(
        should_trade=True,
        reason=(
            f"{signal.signal.value} with confidence {signal.confidence} "
            f"(minimum {policy.min_confidence:g})"
        ),
        evaluated_signal=signal,
        direction=direction,
        max_trade_amount=max(0.0, policy.max_risk),
        stop_loss_price=sl,
        take_profit_price=tp,
    )


def protective_levels(
    entry_price: float,
    direction: str,
    stop_loss_pct: float,
    take_profit_pct: float,
) -> tuple[float, float]:
    """Stop-loss and take-profit prices as percentages from *entry_price*.

    Returns ``(stop_loss, take_profit)`` rounded to 5 decimals.
    """
    sl_dist = entry_price * stop_loss_pct / 100.0
    tp_dist = entry_price * take_profit_pct / 100.0
    if direction == "buy":
        return round(entry_price - sl_dist, 5), round(entry_price + tp_dist, 5)
    return round(entry_price + sl_dist, 5), round(entry_price - tp_dist, 5)
