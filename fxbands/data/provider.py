"""Price series providers — the data boundary of the analysis core.

Every provider returns closes ascending by timestamp with no duplicate
timestamps.  A shorter series than requested is not an error; an unknown
pair raises ``DataUnavailable``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import pandas as pd

from fxbands.data.models import PricePoint, normalize_pair
from fxbands.errors import DataUnavailable

logger = logging.getLogger("fxbands.provider")

_DATE_COLUMN = "Date"
_PAIR_COLUMN = "Currency pair"
_CLOSE_COLUMN = "Close"


@runtime_checkable
class PriceSeriesProvider(Protocol):
    """Interface every price source must satisfy."""

    async def get_price_series(
        self,
        pair: str,
        *,
        days: Optional[int] = None,
        points: Optional[int] = None,
    ) -> list[PricePoint]:
        """Return the ordered closes for *pair* within the requested span."""
        ...


def slice_series(
    series: list[PricePoint],
    *,
    days: Optional[int] = None,
    points: Optional[int] = None,
) -> list[PricePoint]:
    """Trim an ascending series to the requested span.

    ``days=N`` keeps points newer than ``last_timestamp - N days`` (anchored
    on the newest point, not on today).  ``points=N`` keeps the *N* most
    recent points.  Neither returns the whole series.
    """
    if days is not None and points is not None:
        raise ValueError("Pass either days or points, not both")
    if days is not None and days < 1:
        raise ValueError(f"days must be positive, got {days}")
    if points is not None and points < 1:
        raise ValueError(f"points must be positive, got {points}")

    if not series:
        return []
    if points is not None:
        return list(series[-points:])
    if days is not None:
        cutoff = _as_date(series[-1].timestamp) - timedelta(days=days)
        return [p for p in series if _as_date(p.timestamp) > cutoff]
    return list(series)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


# ── Fixture provider ─────────────────────────────────────────────────────


class FixturePriceProvider:
    """Deterministic in-memory provider for tests and demos.

    Args:
        series: Mapping of pair → closes (``PricePoint`` objects or bare
                floats).  Bare floats are dated one day apart ending on
                *end_date*.
        end_date: Date of the last generated point for bare-float series.
    """

    def __init__(
        self,
        series: dict[str, list],
        end_date: date = date(2025, 1, 31),
    ) -> None:
        self._series: dict[str, list[PricePoint]] = {}
        for pair, values in series.items():
            self._series[normalize_pair(pair)] = self._to_points(values, end_date)

    @staticmethod
    def _to_points(values: list, end_date: date) -> list[PricePoint]:
        n = len(values)
        points = []
        for i, v in enumerate(values):
            if isinstance(v, PricePoint):
                points.append(v)
            else:
                points.append(
                    PricePoint(
                        timestamp=end_date - timedelta(days=n - 1 - i),
                        close=float(v),
                    )
                )
        points.sort(key=lambda p: p.timestamp)
        return points

    @property
    def pairs(self) -> list[str]:
        return sorted(self._series)

    async def get_price_series(
        self,
        pair: str,
        *,
        days: Optional[int] = None,
        points: Optional[int] = None,
    ) -> list[PricePoint]:
        key = normalize_pair(pair)
        if key not in self._series:
            raise DataUnavailable(f"Unknown currency pair: {key}")
        return slice_series(self._series[key], days=days, points=points)


# ── Bundled dataset provider ─────────────────────────────────────────────


class DatasetPriceProvider:
    """Reads historical closes from the bundled CSV dataset.

    The file needs ``Date``, ``Currency pair`` and ``Close`` columns; other
    columns are ignored.  The file is parsed once per provider instance.

    Args:
        path: Path to the CSV file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._series: Optional[dict[str, list[PricePoint]]] = None

    def _load(self) -> dict[str, list[PricePoint]]:
        if self._series is not None:
            return self._series

        if not self._path.is_file():
            raise DataUnavailable(f"Price dataset not found: {self._path}")

        df = pd.read_csv(
            self._path,
            usecols=[_DATE_COLUMN, _PAIR_COLUMN, _CLOSE_COLUMN],
        )
        df[_DATE_COLUMN] = pd.to_datetime(df[_DATE_COLUMN]).dt.date
        df[_CLOSE_COLUMN] = pd.to_numeric(df[_CLOSE_COLUMN], errors="coerce")
        df = df.dropna(subset=[_CLOSE_COLUMN])
        df[_PAIR_COLUMN] = df[_PAIR_COLUMN].map(_pair_or_none)
        bad_pairs = int(df[_PAIR_COLUMN].isna().sum())
        if bad_pairs:
            logger.warning(
                "Skipping %d row(s) with an unparseable currency pair in %s",
                bad_pairs, self._path,
            )
        df = df.dropna(subset=[_PAIR_COLUMN])
        df = (
            df.drop_duplicates(subset=[_PAIR_COLUMN, _DATE_COLUMN], keep="last")
            .sort_values([_PAIR_COLUMN, _DATE_COLUMN])
        )

        series: dict[str, list[PricePoint]] = {}
        for pair, group in df.groupby(_PAIR_COLUMN, sort=True):
            series[pair] = [
                PricePoint(timestamp=ts, close=float(close))
                for ts, close in zip(group[_DATE_COLUMN], group[_CLOSE_COLUMN])
            ]

        logger.info(
            "Loaded %d rows for %d pair(s) from %s",
            len(df), len(series), self._path,
        )
        self._series = series
        return series

    @property
    def pairs(self) -> list[str]:
        return sorted(self._load())

    async def get_price_series(
        self,
        pair: str,
        *,
        days: Optional[int] = None,
        points: Optional[int] = None,
    ) -> list[PricePoint]:
        key = normalize_pair(pair)
        series = self._load()
        if key not in series:
            raise DataUnavailable(f"Unknown currency pair: {key}")
        return slice_series(series[key], days=days, points=points)


def _pair_or_none(value) -> Optional[str]:
    try:
        return normalize_pair(str(value))
    except ValueError:
        return None
