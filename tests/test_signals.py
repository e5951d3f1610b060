"""Deterministic tests for signal classification, strength and confidence."""

import math
from datetime import date, timedelta

import pytest

from fxbands.data.models import PricePoint
from fxbands.strategy.indicators import calculate_bollinger
from fxbands.strategy.models import BandPoint, SignalType
from fxbands.strategy.signals import (
    CONFIDENCE_CEILING,
    CONFIDENCE_FLOOR,
    DEFAULT_CONFIDENCE,
    band_confidence,
    band_position,
    classify_position,
    current_signal,
    generate_signals,
    signal_strength,
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _series(closes: list[float]) -> list[PricePoint]:
    start = date(2025, 1, 1)
    return [
        PricePoint(timestamp=start + timedelta(days=i), close=c)
        for i, c in enumerate(closes)
    ]


def _band(middle: float = 1.0, half_width: float = 0.1, index: int = 0) -> BandPoint:
    return BandPoint(
        index=index,
        middle=middle,
        upper=middle + half_width,
        lower=middle - half_width,
        std_dev=half_width / 2,
    )


def _noisy(n: int = 80) -> list[float]:
    return [
        1.2 + 0.01 * math.sin(i / 2.0) + 0.02 * math.sin(i / 7.0) * (i % 3)
        for i in range(n)
    ]


# ── Position & classification ────────────────────────────────────────────


class TestClassification:

    def test_band_position(self):
        band = _band(1.0, 0.1)
        assert band_position(0.9, band) == pytest.approx(0.0)
        assert band_position(1.0, band) == pytest.approx(0.5)
        assert band_position(1.1, band) == pytest.approx(1.0)
        assert band_position(1.2, band) == pytest.approx(1.5)

    def test_flat_band_is_neutral_midpoint(self):
        flat = BandPoint(index=0, middle=1.0, upper=1.0, lower=1.0, std_dev=0.0)
        assert band_position(1.5, flat) == 0.5
        assert band_position(0.5, flat) == 0.5

    @pytest.mark.parametrize(
        "position, expected",
        [
            (-0.3, SignalType.STRONG_BUY),
            (0.0, SignalType.STRONG_BUY),
            (0.1, SignalType.BUY),
            (0.25, SignalType.NEUTRAL),
            (0.5, SignalType.NEUTRAL),
            (0.75, SignalType.NEUTRAL),
            (0.9, SignalType.SELL),
            (1.0, SignalType.STRONG_SELL),
            (1.4, SignalType.STRONG_SELL),
        ],
    )
    def test_bucket_boundaries(self, position, expected):
        assert classify_position(position) == expected

    def test_strength_scaling_and_clamp(self):
        assert signal_strength(0.5) == 0
        assert signal_strength(0.0) == 100
        assert signal_strength(1.0) == 100
        assert signal_strength(0.1) == 80
        assert signal_strength(-2.0) == 100
        assert signal_strength(3.0) == 100


# ── Confidence ───────────────────────────────────────────────────────────


class TestConfidence:

    def test_default_without_history(self):
        assert band_confidence([]) == DEFAULT_CONFIDENCE
        assert band_confidence([_band()]) == DEFAULT_CONFIDENCE

    def test_flat_bands_max_confidence(self):
        flat = [
            BandPoint(index=i, middle=1.0, upper=1.0, lower=1.0, std_dev=0.0)
            for i in range(5)
        ]
        assert band_confidence(flat) == CONFIDENCE_CEILING

    def test_stable_bands_score_high(self):
        steady = [_band(1.0, 0.05, i) for i in range(20)]
        assert band_confidence(steady) == CONFIDENCE_CEILING

    def test_widening_bands_score_lower(self):
        steady = [_band(1.0, 0.05, i) for i in range(20)]
        widening = steady[:-1] + [_band(1.0, 0.25, 19)]
        assert band_confidence(widening) < band_confidence(steady)

    def test_erratic_bands_hit_floor(self):
        erratic = [_band(1.0, 0.001 if i % 2 else 0.5, i) for i in range(19)]
        erratic.append(_band(1.0, 1.5, 19))
        assert band_confidence(erratic) == CONFIDENCE_FLOOR

    def test_window_limits_history(self):
        old_noise = [_band(1.0, 0.5 if i % 2 else 0.01, i) for i in range(30)]
        recent = [_band(1.0, 0.05, 30 + i) for i in range(10)]
        assert band_confidence(old_noise + recent, window=10) == CONFIDENCE_CEILING


# ── Signal generation ────────────────────────────────────────────────────


class TestGenerateSignals:

    def test_one_signal_per_band(self):
        prices = _series(_noisy(50))
        bands = calculate_bollinger(prices, period=20)
        signals = generate_signals(prices, bands)
        assert len(signals) == len(bands)
        assert [s.index for s in signals] == [b.index for b in bands]
        for sig in signals:
            assert sig.price == prices[sig.index].close
            assert sig.timestamp == prices[sig.index].timestamp

    def test_constant_series_all_neutral(self):
        prices = _series([1.0] * 25)
        bands = calculate_bollinger(prices, period=20)
        signals = generate_signals(prices, bands)
        assert len(signals) == 6
        for sig in signals:
            assert sig.signal == SignalType.NEUTRAL
            assert sig.strength == 0
            assert sig.position == 0.5

    def test_strength_and_confidence_in_range(self):
        prices = _series(_noisy(120))
        bands = calculate_bollinger(prices, period=20)
        for sig in generate_signals(prices, bands):
            assert 0 <= sig.strength <= 100
            assert CONFIDENCE_FLOOR <= sig.confidence <= CONFIDENCE_CEILING

    def test_price_below_lower_band_strong_buy(self):
        closes = [1.00 if i % 2 == 0 else 1.01 for i in range(25)]
        closes[24] = 0.97
        prices = _series(closes)
        signals = generate_signals(prices, calculate_bollinger(prices, period=20))
        last = current_signal(signals)
        assert last.signal == SignalType.STRONG_BUY
        assert last.strength == 100
        assert "lower band" in last.reason

    def test_price_above_upper_band_strong_sell(self):
        closes = [1.00 if i % 2 == 0 else 1.01 for i in range(25)]
        closes[24] = 1.05
        prices = _series(closes)
        signals = generate_signals(prices, calculate_bollinger(prices, period=20))
        assert current_signal(signals).signal == SignalType.STRONG_SELL

    def test_reason_mentions_flat_bands(self):
        prices = _series([1.0] * 20)
        sig = generate_signals(prices, calculate_bollinger(prices, period=20))[0]
        assert "Flat bands" in sig.reason

    def test_current_signal_empty(self):
        assert current_signal([]) is None
