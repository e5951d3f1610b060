"""ExchangeRate-API v6 async client.

Fetches full rate tables for a base currency and single pair conversion
rates.  Transient failures are retried here so the analysis core never
has to.
"""

import asyncio
import logging
from typing import Optional

import httpx

from fxbands.config import Config
from fxbands.errors import DataUnavailable, RateFeedError

logger = logging.getLogger("fxbands.rates_client")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}

# API error types meaning "this currency does not exist here"
_UNKNOWN_CODE_ERRORS = {"unsupported-code", "malformed-request"}


class ExchangeRateClient:
    """Async client wrapping the ExchangeRate-API v6 endpoints."""

    def __init__(self, config: Config, retry_base_delay: float = _RETRY_BASE_DELAY) -> None:
        self._base_url = config.rate_api_url
        self._retry_base_delay = retry_base_delay

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504), rate limits
        (429) and transport errors.  Other HTTP errors raise immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, timeout=10.0)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = self._retry_base_delay * (2 ** attempt)
                    logger.warning(
                        "Rate API GET returned %d — retry %d/%d in %.1fs",
                        resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                return resp

            except httpx.TransportError as exc:
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Rate API transport error (%s) — retry %d/%d in %.1fs",
                    exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise RateFeedError(
            f"Rate API unavailable after {_MAX_RETRIES} attempts: {last_exc}"
        ) from last_exc

    async def _get_json(self, path: str) -> dict:
        resp = await self._get_with_retry(f"{self._base_url}/{path}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise RateFeedError(
                f"Rate API returned non-JSON response ({resp.status_code})"
            ) from exc

        if not isinstance(data, dict):
            raise RateFeedError("Rate API returned an unexpected payload")
        if data.get("result") == "success":
            return data

        error_type = data.get("error-type", f"http-{resp.status_code}")
        if error_type in _UNKNOWN_CODE_ERRORS:
            raise DataUnavailable(f"Unknown currency in request: {path}")
        raise RateFeedError(f"Rate API error: {error_type}")

    # ── Rates ────────────────────────────────────────────────────────────

    async def fetch_latest(self, base: str) -> dict[str, float]:
        """Return ``{currency: rate}`` for one unit of *base*."""
        data = await self._get_json(f"latest/{base.upper()}")
        try:
            return {
                code: float(rate)
                for code, rate in data.get("conversion_rates", {}).items()
            }
        except (TypeError, ValueError) as exc:
            raise RateFeedError(f"Malformed rate table for {base.upper()}") from exc

    async def fetch_pair_rate(self, base: str, quote: str) -> float:
        """Return the conversion rate from *base* to *quote*."""
        quote_data = await self.fetch_pair_quote(base, quote)
        return quote_data["rate"]

    async def fetch_pair_quote(self, base: str, quote: str) -> dict:
        """Return rate plus the feed's last-update timestamp."""
        pair = f"{base.upper()}/{quote.upper()}"
        data = await self._get_json(f"pair/{base.upper()}/{quote.upper()}")
        try:
            rate = float(data["conversion_rate"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RateFeedError(f"Malformed pair rate for {pair}") from exc
        return {
            "pair": pair,
            "rate": rate,
            "last_update": data.get("time_last_update_utc"),
        }
