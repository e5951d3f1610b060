"""Bollinger signal generation — pure functions, no I/O.

Classifies each band-aligned price by its normalised position inside the
bands, scores how extreme that position is (strength) and how stable the
recent band width has been (confidence).
"""

from typing import Optional

import numpy as np

from fxbands.data.models import PricePoint
from fxbands.strategy.models import BandPoint, Signal, SignalType

# Position bucket boundaries; a boundary belongs to the more extreme bucket
_BUY_ZONE = 0.25
_SELL_ZONE = 0.75

CONFIDENCE_FLOOR = 30
CONFIDENCE_CEILING = 95
DEFAULT_CONFIDENCE = 50


def band_position(price: float, band: BandPoint) -> float:
    """Normalised position of *price* within *band*.

    0.0 is the lower band, 1.0 the upper band.  Flat bands (zero width)
    return the neutral midpoint 0.5.
    """
    if band.upper > band.lower:
        return (price - band.lower) / (band.upper - band.lower)
    return 0.5


def classify_position(position: float) -> SignalType:
    """Map a normalised band position to a ``SignalType``."""
    if position <= 0.0:
        return SignalType.STRONG_BUY
    if position < _BUY_ZONE:
        return SignalType.BUY
    if position <= _SELL_ZONE:
        return SignalType.NEUTRAL
    if position < 1.0:
        return SignalType.SELL
    return SignalType.STRONG_SELL


def signal_strength(position: float) -> int:
    """Distance from the band midpoint scaled to 0..100."""
    return _clamp(round(abs(position - 0.5) * 200), 0, 100)


def band_confidence(bands: list[BandPoint], window: Optional[int] = None) -> int:
    """Confidence from the stability of recent band widths.

    Uses the relative widths of the last *window* bands (all of them when
    ``None``), the last entry being the current band.  Narrower and more
    consistent bands score higher.

    Returns an integer in ``[CONFIDENCE_FLOOR, CONFIDENCE_CEILING]``;
    ``DEFAULT_CONFIDENCE`` when fewer than two widths are available.
    """
    recent = bands[-window:] if window else bands
    if len(recent) < 2:
        return DEFAULT_CONFIDENCE

    widths = np.array([_relative_width(b) for b in recent], dtype=float)
    mean_width = float(widths.mean())
    if mean_width == 0:
        return CONFIDENCE_CEILING

    cv = float(widths.std()) / mean_width
    stability = max(0.0, 1.0 - cv)
    narrowness = min(1.0, max(0.0, 2.0 - float(widths[-1]) / mean_width))

    score = CONFIDENCE_FLOOR + (CONFIDENCE_CEILING - CONFIDENCE_FLOOR) * (
        (stability + narrowness) / 2.0
    )
    return _clamp(round(score), CONFIDENCE_FLOOR, CONFIDENCE_CEILING)


def generate_signals(
    prices: list[PricePoint],
    bands: list[BandPoint],
    confidence_window: int = 20,
) -> list[Signal]:
    """Produce one ``Signal`` per ``BandPoint``.

    Args:
        prices: Full ascending price series.
        bands: Output of ``calculate_bollinger`` for *prices*.
        confidence_window: Number of trailing bands used for confidence
            (normally the Bollinger period).

    Returns:
        Signals in chronological order, ``signal.index == band.index``.
    """
    signals: list[Signal] = []
    for j, band in enumerate(bands):
        point = prices[band.index]
        position = band_position(point.close, band)
        kind = classify_position(position)
        confidence = band_confidence(
            bands[max(0, j - confidence_window + 1) : j + 1]
        )
        signals.append(
            Signal(
                index=band.index,
                signal=kind,
                price=point.close,
                strength=signal_strength(position),
                confidence=confidence,
                reason=_reason(kind, point.close, position, band),
                position=position,
                timestamp=point.timestamp,
            )
        )
    return signals


def current_signal(signals: list[Signal]) -> Optional[Signal]:
    """The signal at the last available index, or ``None``."""
    return signals[-1] if signals else None


# ── Helpers ──────────────────────────────────────────────────────────────


def _relative_width(band: BandPoint) -> float:
    if band.middle != 0:
        return band.width / abs(band.middle)
    return band.width


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _reason(
    kind: SignalType, price: float, position: float, band: BandPoint,
) -> str:
    if band.upper <= band.lower:
        return (
            f"Flat bands at {band.middle:.5f} (zero width) — "
            f"price {price:.5f} treated as neutral"
        )
    where = {
        SignalType.STRONG_BUY: f"at/below lower band {band.lower:.5f}",
        SignalType.BUY: f"near lower band {band.lower:.5f}",
        SignalType.NEUTRAL: f"inside bands around middle {band.middle:.5f}",
        SignalType.SELL: f"near upper band {band.upper:.5f}",
        SignalType.STRONG_SELL: f"at/above upper band {band.upper:.5f}",
    }[kind]
    return (
        f"{kind.value}: price {price:.5f} {where} "
        f"(position {position:.2f}, bands {band.lower:.5f}–{band.upper:.5f})"
    )
