"""Strategy data models — typed representations for indicator and signal outputs."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class SignalType(str, Enum):
    """Directional classification of a price relative to its bands."""

    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    NEUTRAL = "NEUTRAL"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @property
    def is_buy(self) -> bool:
        return self in (SignalType.BUY, SignalType.STRONG_BUY)

    @property
    def is_sell(self) -> bool:
        return self in (SignalType.SELL, SignalType.STRONG_SELL)


@dataclass(frozen=True)
class BandPoint:
    """Bollinger Bands at one index of the price series."""

    index: int
    middle: float
    upper: float
    lower: float
    std_dev: float

    @property
    def width(self) -> float:
        """Distance between the upper and lower band."""
        return self.upper - self.lower


@dataclass(frozen=True)
class Signal:
    """A directional signal for one band-aligned price."""

    index: int
    signal: SignalType
    price: float
    strength: int  # 0..100
    confidence: int  # 0..100
    reason: str
    position: float  # (price - lower) / (upper - lower); 0.5 on flat bands
    timestamp: Optional[date] = None


@dataclass(frozen=True)
class MarketAnalysis:
    """Qualitative market summary derived from bands and signals."""

    trend: str  # "Uptrend", "Downtrend" or "Sideways"
    volatility: str  # "Low", "Medium" or "High"
    position: str  # e.g. "Middle", "Below Lower Band"
    recommendation: str  # "Buy", "Sell" or "Hold"
