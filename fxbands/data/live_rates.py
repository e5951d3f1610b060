"""Live rate service — periodic refresh of quotes for tracked pairs.

One process-wide object with an explicit ``start()`` / ``stop()``
lifecycle.  The clock and the sleep function are injected so the refresh
loop can be driven in tests without wall-clock delays.

Each refresh pulls the USD and EUR rate tables, derives every tracked
pair (direct, inverse or USD cross), stores a bid/ask quote and appends
the mid to a per-minute history that doubles as a price-series source.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fxbands.data.models import (
    MAJOR_PAIRS,
    PricePoint,
    RateQuote,
    normalize_pair,
    spread_for,
)
from fxbands.data.provider import slice_series
from fxbands.errors import DataUnavailable

logger = logging.getLogger("fxbands.live_rates")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def derive_rate(
    pair: str,
    usd_rates: dict[str, float],
    eur_rates: dict[str, float],
) -> Optional[float]:
    """Rate for *pair* from USD- and EUR-based tables.

    Tries a direct quote, then an inverse, then a cross through USD.
    Returns ``None`` when the tables do not cover the pair.
    """
    base, quote = pair.split("/")

    if base == "USD" and usd_rates.get(quote):
        return usd_rates[quote]
    if quote == "USD" and usd_rates.get(base):
        return 1.0 / usd_rates[base]
    if base == "EUR" and eur_rates.get(quote):
        return eur_rates[quote]
    if quote == "EUR" and eur_rates.get(base):
        return 1.0 / eur_rates[base]

    # Cross: units of USD per 1 base ÷ units of USD per 1 quote
    base_usd = 1.0 if base == "USD" else (
        1.0 / usd_rates[base] if usd_rates.get(base) else None
    )
    quote_usd = 1.0 if quote == "USD" else (
        1.0 / usd_rates[quote] if usd_rates.get(quote) else None
    )
    if base_usd and quote_usd:
        return base_usd / quote_usd
    return None


class LiveRateService:
    """Keeps live quotes and a short rate history for tracked pairs.

    Args:
        client: An ``ExchangeRateClient`` (or duck-type with
                ``fetch_latest``).
        pairs: Pairs to track; defaults to ``MAJOR_PAIRS``.
        interval_seconds: Delay between refreshes.
        max_errors: Consecutive failed refreshes that stop the service.
        clock: Returns the current UTC time.
        sleep: Awaitable delay, ``asyncio.sleep`` by default.
        history_limit: Points kept per pair.
    """

    def __init__(
        self,
        client,
        pairs: Optional[list[str]] = None,
        interval_seconds: float = 30.0,
        max_errors: int = 5,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        history_limit: int = 5000,
    ) -> None:
        self._client = client
        self._pairs = [normalize_pair(p) for p in (pairs or MAJOR_PAIRS)]
        self._interval = interval_seconds
        self._max_errors = max_errors
        self._clock = clock
        self._sleep = sleep
        self._history_limit = history_limit

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._error_count = 0
        self._last_update: Optional[datetime] = None
        self._quotes: dict[str, RateQuote] = {}
        self._history: dict[str, list[PricePoint]] = {}

    # ── Lifecycle ────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Schedule the refresh loop on the running event loop."""
        if self._running:
            logger.info("Live rate service is already running")
            return
        logger.info(
            "Starting live rate service (%d pairs, every %.0fs)",
            len(self._pairs), self._interval,
        )
        self._running = True
        self._error_count = 0
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the refresh loop; ``wait_stopped()`` awaits its exit."""
        if not self._running:
            logger.info("Live rate service is not running")
            return
        logger.info("Stopping live rate service")
        self._running = False
        if self._task is not None:
            self._task.cancel()

    async def wait_stopped(self) -> None:
        """Await the last refresh task, swallowing its cancellation."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        try:
            while self._running:
                try:
                    await self.refresh()
                    self._error_count = 0
                except Exception as exc:
                    self._error_count += 1
                    logger.error(
                        "Live rate refresh failed (%d/%d): %s",
                        self._error_count, self._max_errors, exc,
                    )
                    if self._error_count >= self._max_errors:
                        logger.error("Too many errors, stopping live rate service")
                        return
                await self._sleep(self._interval)
        finally:
            # A restarted service owns a newer task
            if self._task is asyncio.current_task():
                self._running = False

    # ── Refresh ──────────────────────────────────────────────────────────

    async def refresh(self) -> int:
        """Fetch rate tables once and update every tracked pair.

        Returns the number of pairs updated.  Feed errors propagate.
        """
        usd_rates = await self._client.fetch_latest("USD")
        eur_rates = await self._client.fetch_latest("EUR")
        now = self._clock()

        updated = 0
        for pair in self._pairs:
            rate = derive_rate(pair, usd_rates, eur_rates)
            if rate is None:
                logger.warning("Could not derive a rate for %s", pair)
                continue
            spread = spread_for(pair, rate)
            self._quotes[pair] = RateQuote(
                pair=pair,
                bid=rate - spread / 2,
                ask=rate + spread / 2,
                mid=rate,
                timestamp=now,
            )
            self._record(pair, rate, now)
            updated += 1

        self._last_update = now
        logger.info("Updated %d currency pair(s) at %s", updated, now.isoformat())
        return updated

    def _record(self, pair: str, rate: float, now: datetime) -> None:
        minute = now.replace(second=0, microsecond=0)
        history = self._history.setdefault(pair, [])
        point = PricePoint(timestamp=minute, close=rate)
        if history and history[-1].timestamp == minute:
            history[-1] = point
        else:
            history.append(point)
        if len(history) > self._history_limit:
            del history[0]

    # ── Queries ──────────────────────────────────────────────────────────

    def status(self) -> dict:
        return {
            "is_running": self._running,
            "last_update": self._last_update.isoformat() if self._last_update else None,
            "error_count": self._error_count,
            "update_interval": self._interval,
            "tracked_pairs": len(self._pairs),
        }

    def get_quote(self, pair: str) -> Optional[RateQuote]:
        return self._quotes.get(normalize_pair(pair))

    def all_quotes(self) -> list[RateQuote]:
        return [self._quotes[p] for p in sorted(self._quotes)]

    async def get_price_series(
        self,
        pair: str,
        *,
        days: Optional[int] = None,
        points: Optional[int] = None,
    ) -> list[PricePoint]:
        key = normalize_pair(pair)
        history = self._history.get(key)
        if not history:
            raise DataUnavailable(f"No live history for {key}")
        return slice_series(history, days=days, points=points)
