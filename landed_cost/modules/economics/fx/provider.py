"""HTTP FX rate provider."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal

import httpx

from landed_cost.config import settings
from landed_cost.exceptions import FxRateUnavailableError
from landed_cost.modules.economics.normalizer import to_decimal_or_null

logger = logging.getLogger(__name__)

_MAX_RETRIES = 2
_RETRY_STATUSES = {429, 500, 502, 503, 504}
_BASE_BACKOFF_SECONDS = 0.5


class FxProviderBase(ABC):
    @abstractmethod
    async def fetch_rate(self, base: str, quote: str) -> Decimal:
        """Return the current base->quote rate or raise ``FxRateUnavailableError``."""


class HttpFxProvider(FxProviderBase):
    """Fetches rates from a JSON endpoint (Frankfurter-compatible by default).

    The URL template may contain ``{base}`` and ``{quote}`` placeholders.
    """

    def __init__(self, url_template: str | None = None, timeout: float | None = None) -> None:
        self.url_template = url_template or settings.fx_api_url
        self.timeout = timeout or settings.fx_api_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _get_with_retry(self, url: str) -> httpx.Response:
        """GET with exponential backoff for retryable statuses and transport errors."""
        client = await self._get_client()
        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = await client.get(url)
                if response.status_code < 400:
                    return response
                if response.status_code not in _RETRY_STATUSES or attempt >= _MAX_RETRIES:
                    response.raise_for_status()
                delay = _BASE_BACKOFF_SECONDS * (2 ** attempt)
                logger.warning(
                    "FX provider returned %d, retrying in %.1fs (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, _MAX_RETRIES,
                )
                await asyncio.sleep(delay)
            except httpx.HTTPStatusError:
                raise
            except httpx.RequestError as exc:
                if attempt >= _MAX_RETRIES:
                    raise
                delay = _BASE_BACKOFF_SECONDS * (2 ** attempt)
                logger.warning("FX provider request error: %s, retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
        raise RuntimeError("Max retries exceeded for FX provider request")

    async def fetch_rate(self, base: str, quote: str) -> Decimal:
        url = self.url_template.replace("{base}", base).replace("{quote}", quote)
        try:
            response = await self._get_with_retry(url)
            data = response.json() or {}
        except (httpx.HTTPError, ValueError) as exc:
            raise FxRateUnavailableError(base, quote, f"provider error: {exc}") from exc

        rate = extract_rate(data, quote)
        if rate is None or rate <= 0:
            raise FxRateUnavailableError(base, quote, "provider returned no rate")
        return rate


def extract_rate(data: dict, quote: str) -> Decimal | None:
    """Pull the rate out of the common FX API response shapes."""
    if not isinstance(data, dict):
        return None
    info = data.get("info")
    rates = data.get("rates")
    candidates = (
        info.get("rate") if isinstance(info, dict) else None,
        data.get("result"),
        data.get("conversion_rate"),
        rates.get(quote) if isinstance(rates, dict) else None,
    )
    for candidate in candidates:
        rate = to_decimal_or_null(candidate)
        if rate is not None:
            return rate
    return None
