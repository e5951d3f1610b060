"""Market analysis — qualitative summary of the latest bands and signals."""

import numpy as np

from fxbands.strategy.models import BandPoint, MarketAnalysis, Signal, SignalType

TREND_NOISE_THRESHOLD = 0.001  # relative middle-band change
HIGH_VOLATILITY_RATIO = 1.2
LOW_VOLATILITY_RATIO = 0.8

_POSITION_LABELS = {
    SignalType.STRONG_BUY: "Below Lower Band",
    SignalType.BUY: "Near Lower Band",
    SignalType.NEUTRAL: "Middle",
    SignalType.SELL: "Near Upper Band",
    SignalType.STRONG_SELL: "Above Upper Band",
}


def detect_trend(bands: list[BandPoint], window: int = 5) -> str:
    """Classify the middle-band slope over the last *window* bands."""
    recent = bands[-window:]
    if len(recent) < 2:
        return "Sideways"
    first = recent[0].middle
    last = recent[-1].middle
    if first == 0:
        change = last - first
    else:
        change = (last - first) / abs(first)
    if change > TREND_NOISE_THRESHOLD:
        return "Uptrend"
    if change < -TREND_NOISE_THRESHOLD:
        return "Downtrend"
    return "Sideways"


def detect_volatility(bands: list[BandPoint], lookback: int = 20) -> str:
    """Compare the current band width to its trailing mean."""
    recent = bands[-lookback:]
    if not recent:
        return "Low"
    mean_width = float(np.mean([b.width for b in recent]))
    if mean_width == 0:
        return "Low"
    ratio = recent[-1].width / mean_width
    if ratio > HIGH_VOLATILITY_RATIO:
        return "High"
    if ratio < LOW_VOLATILITY_RATIO:
        return "Low"
    return "Medium"


def recommendation_for(signal: SignalType) -> str:
    """Collapse a signal into Buy / Sell / Hold."""
    if signal.is_buy:
        return "Buy"
    if signal.is_sell:
        return "Sell"
    return "Hold"


def analyze_market(
    bands: list[BandPoint],
    signals: list[Signal],
    window: int = 5,
    lookback: int = 20,
) -> MarketAnalysis:
    """Derive trend, volatility, position and recommendation.

    Args:
        bands: Bollinger bands, chronological.
        signals: Signals aligned to *bands*; the last one is current.
        window: Trailing bands used for the trend slope.
        lookback: Trailing bands used for the volatility baseline.
    """
    current = signals[-1].signal if signals else SignalType.NEUTRAL
    return MarketAnalysis(
        trend=detect_trend(bands, window),
        volatility=detect_volatility(bands, lookback),
        position=_POSITION_LABELS[current],
        recommendation=recommendation_for(current),
    )
