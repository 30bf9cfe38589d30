"""Tests for FX rate lookup: service fallbacks, the Redis cache and the HTTP provider."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from redis.exceptions import RedisError

from landed_cost.exceptions import FxRateUnavailableError
from landed_cost.modules.economics.fx.cache import FxRateCache
from landed_cost.modules.economics.fx.provider import HttpFxProvider, extract_rate
from landed_cost.modules.economics.fx.rate_service import (
    FxRateQuote,
    FxRateService,
    normalize_fx_code,
)

FRESH = timedelta(seconds=60)
STALE = timedelta(days=2)


def _cache(entry: tuple | None = None) -> MagicMock:
    cache = MagicMock()
    cache.get = AsyncMock(return_value=entry)
    cache.set = AsyncMock()
    return cache


def _provider(rate: Decimal | None = None) -> MagicMock:
    provider = MagicMock()
    if rate is None:
        provider.fetch_rate = AsyncMock(side_effect=FxRateUnavailableError("EUR", "USD", "down"))
    else:
        provider.fetch_rate = AsyncMock(return_value=rate)
    return provider


class TestNormalizeFxCode:
    def test_valid(self) -> None:
        assert normalize_fx_code(" eur ") == "EUR"

    @pytest.mark.parametrize("raw", [None, "", "EU", "EURO", "12$"])
    def test_invalid(self, raw) -> None:
        assert normalize_fx_code(raw) is None


class TestFxRateService:
    @pytest.mark.asyncio
    async def test_same_currency(self) -> None:
        service = FxRateService(None, cache=_cache(), provider=_provider())
        quote = await service.get_rate("usd", "USD")
        assert quote.rate == Decimal("1")
        assert quote.source == "same"

    @pytest.mark.asyncio
    async def test_invalid_codes(self) -> None:
        service = FxRateService(None, cache=_cache(), provider=_provider())
        with pytest.raises(FxRateUnavailableError, match="invalid currency codes"):
            await service.get_rate("US", "EUR")

    @pytest.mark.asyncio
    async def test_fresh_cache_hit(self) -> None:
        fetched = datetime.now(UTC) - FRESH
        provider = _provider(Decimal("2"))
        service = FxRateService(None, cache=_cache((Decimal("1.08"), fetched, "api")), provider=provider)

        quote = await service.get_rate("EUR", "USD")

        assert quote.rate == Decimal("1.08")
        assert quote.source == "cache"
        provider.fetch_rate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_force_refresh_skips_cache(self) -> None:
        fetched = datetime.now(UTC) - FRESH
        provider = _provider(Decimal("1.1"))
        service = FxRateService(None, cache=_cache((Decimal("1.08"), fetched, "api")), provider=provider)

        quote = await service.get_rate("EUR", "USD", force_refresh=True)

        assert quote.rate == Decimal("1.1")
        assert quote.source == "api"

    @pytest.mark.asyncio
    async def test_fresh_db_snapshot(self) -> None:
        cache = _cache()
        provider = _provider(Decimal("2"))
        service = FxRateService(MagicMock(), cache=cache, provider=provider)
        snapshot = FxRateQuote(Decimal("1.07"), datetime.now(UTC) - FRESH, "db")

        with patch.object(service, "_load_from_db", AsyncMock(return_value=snapshot)):
            quote = await service.get_rate("EUR", "USD")

        assert quote.source == "db"
        assert quote.rate == Decimal("1.07")
        cache.set.assert_awaited_once()
        provider.fetch_rate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_result_is_cached_and_saved(self) -> None:
        cache = _cache()
        service = FxRateService(MagicMock(), cache=cache, provider=_provider(Decimal("1.09")))

        with patch.object(service, "_load_from_db", AsyncMock(return_value=None)), patch.object(
            service, "_save_to_db", AsyncMock()
        ) as save:
            quote = await service.get_rate("EUR", "USD")

        assert quote.source == "api"
        assert quote.rate == Decimal("1.09")
        assert cache.set.await_args.args[:3] == ("EUR", "USD", Decimal("1.09"))
        save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_db_fallback(self) -> None:
        service = FxRateService(MagicMock(), cache=_cache(), provider=_provider(None))
        snapshot = FxRateQuote(Decimal("1.01"), datetime.now(UTC) - STALE, "db")

        with patch.object(service, "_load_from_db", AsyncMock(return_value=snapshot)):
            quote = await service.get_rate("EUR", "USD")

        assert quote.source == "db_stale_fallback"
        assert quote.rate == Decimal("1.01")

    @pytest.mark.asyncio
    async def test_stale_cache_fallback(self) -> None:
        fetched = datetime.now(UTC) - STALE
        service = FxRateService(
            None, cache=_cache((Decimal("1.02"), fetched, "api")), provider=_provider(None)
        )

        quote = await service.get_rate("EUR", "USD")

        assert quote.source == "cache_stale_fallback"
        assert quote.rate == Decimal("1.02")

    @pytest.mark.asyncio
    async def test_nothing_available(self) -> None:
        service = FxRateService(None, cache=_cache(), provider=_provider(None))
        with pytest.raises(FxRateUnavailableError):
            await service.get_rate("EUR", "USD")


class TestFxRateCache:
    @pytest.mark.asyncio
    async def test_set_then_get(self) -> None:
        store: dict[str, str] = {}
        client = MagicMock()

        async def _set(key, value, ex=None):
            store[key] = value

        async def _get(key):
            return store.get(key)

        client.set = AsyncMock(side_effect=_set)
        client.get = AsyncMock(side_effect=_get)
        cache = FxRateCache(redis_client=client)
        fetched = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

        await cache.set("EUR", "USD", Decimal("1.0812"), fetched, "api")
        entry = await cache.get("EUR", "USD")

        assert "fx:EUR->USD" in store
        assert entry == (Decimal("1.0812"), fetched, "api")

    @pytest.mark.asyncio
    async def test_redis_failure_is_a_miss(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisError("connection refused"))
        assert await FxRateCache(redis_client=client).get("EUR", "USD") is None

    @pytest.mark.asyncio
    async def test_malformed_entry_is_a_miss(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=json.dumps({"rate": "1.1"}))
        assert await FxRateCache(redis_client=client).get("EUR", "USD") is None


class TestExtractRate:
    def test_rates_map(self) -> None:
        assert extract_rate({"base": "EUR", "rates": {"USD": 1.08}}, "USD") == Decimal("1.08")

    def test_info_rate(self) -> None:
        assert extract_rate({"info": {"rate": "0.5"}}, "USD") == Decimal("0.5")

    def test_result(self) -> None:
        assert extract_rate({"result": 2}, "USD") == Decimal("2")

    def test_missing(self) -> None:
        assert extract_rate({"rates": {"GBP": 0.8}}, "USD") is None
        assert extract_rate([], "USD") is None


class TestHttpFxProvider:
    @pytest.mark.asyncio
    async def test_fetch_rate(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"base": "EUR", "rates": {"USD": 1.0815}})

        provider = HttpFxProvider(url_template="https://fx.test/latest?from={base}&to={quote}")
        provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        rate = await provider.fetch_rate("EUR", "USD")
        await provider.aclose()

        assert rate == Decimal("1.0815")
        assert seen == ["https://fx.test/latest?from=EUR&to=USD"]

    @pytest.mark.asyncio
    async def test_client_error_is_unavailable(self) -> None:
        provider = HttpFxProvider(url_template="https://fx.test/{base}/{quote}")
        provider._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={}))
        )

        with pytest.raises(FxRateUnavailableError, match="provider error"):
            await provider.fetch_rate("EUR", "XXX")
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_missing_rate_is_unavailable(self) -> None:
        provider = HttpFxProvider(url_template="https://fx.test/{base}/{quote}")
        provider._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"rates": {}}))
        )

        with pytest.raises(FxRateUnavailableError, match="no rate"):
            await provider.fetch_rate("EUR", "USD")
        await provider.aclose()
