"""Technical indicators — Bollinger Bands. Pure functions, no I/O."""

import math

from fxbands.data.models import PricePoint
from fxbands.errors import InsufficientData
from fxbands.strategy.models import BandPoint


def calculate_bollinger(
    prices: list[PricePoint],
    period: int = 20,
    num_std_dev: float = 2.0,
) -> list[BandPoint]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *num_std_dev* × σ
    Lower  = middle − *num_std_dev* × σ

    σ is the population standard deviation of the window.  One
    ``BandPoint`` is produced per index ``i >= period - 1``; earlier
    indices are simply absent, so ``band.index`` is the position in
    *prices* the band belongs to.

    Raises ``InsufficientData`` if fewer than *period* prices are given,
    ``ValueError`` on a non-positive period or negative multiplier.
    """
    if period < 1:
        raise ValueError(f"period must be positive, got {period}")
    if num_std_dev < 0:
        raise ValueError(f"num_std_dev must be non-negative, got {num_std_dev}")
    if len(prices) < period:
        raise InsufficientData(required=period, available=len(prices))

    closes = [p.close for p in prices]
    bands: list[BandPoint] = []

    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1 : i + 1]
        sma = sum(window) / period
        variance = sum((x - sma) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        # Rounding noise on a flat window must not open the bands
        if all(x == window[0] for x in window):
            sma = window[0]
            sigma = 0.0

        bands.append(
            BandPoint(
                index=i,
                middle=sma,
                upper=sma + num_std_dev * sigma,
                lower=sma - num_std_dev * sigma,
                std_dev=sigma,
            )
        )

    return bands
