"""Layered FX rate lookup over the Redis cache, the database snapshot and the HTTP provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.config import settings
from landed_cost.database.introspection import is_missing_object_error
from landed_cost.database.session import atomic
from landed_cost.exceptions import FxRateUnavailableError
from landed_cost.models.fx_rate import FxRate
from landed_cost.modules.economics.fx.cache import FxRateCache
from landed_cost.modules.economics.fx.provider import FxProviderBase, HttpFxProvider

logger = logging.getLogger(__name__)

SOURCE_SAME = "same"
SOURCE_CACHE = "cache"
SOURCE_DB = "db"
SOURCE_API = "api"
SOURCE_DB_STALE = "db_stale_fallback"
SOURCE_CACHE_STALE = "cache_stale_fallback"


@dataclass(frozen=True)
class FxRateQuote:
    rate: Decimal
    fetched_at: datetime
    source: str


def normalize_fx_code(value: object) -> str | None:
    """Strict variant of the currency normalizer: exactly three letters or None."""
    if not value:
        return None
    s = str(value).strip().upper()
    return s if len(s) == 3 and s.isalpha() else None


class FxRateService:
    """Resolve base->quote rates.

    Order: identity, fresh cache entry, fresh database snapshot, provider.
    When the provider fails a stale database snapshot, then a stale cache
    entry, is returned instead; with neither, ``FxRateUnavailableError``.
    """

    def __init__(
        self,
        db: AsyncSession | None,
        cache: FxRateCache | None = None,
        provider: FxProviderBase | None = None,
    ) -> None:
        self.db = db
        self.cache = cache or FxRateCache()
        self.provider = provider or HttpFxProvider()

    async def get_rate(
        self,
        base_raw: object,
        quote_raw: object,
        *,
        force_refresh: bool = False,
        max_db_age_seconds: int | None = None,
    ) -> FxRateQuote:
        base = normalize_fx_code(base_raw)
        quote = normalize_fx_code(quote_raw)
        if not base or not quote:
            raise FxRateUnavailableError(base_raw, quote_raw, "invalid currency codes")

        now = datetime.now(UTC)
        if base == quote:
            return FxRateQuote(rate=Decimal("1"), fetched_at=now, source=SOURCE_SAME)

        cached = await self.cache.get(base, quote)
        if (
            cached is not None
            and not force_refresh
            and _age_seconds(cached[1], now) < settings.fx_cache_ttl_seconds
        ):
            return FxRateQuote(rate=cached[0], fetched_at=cached[1], source=SOURCE_CACHE)

        from_db: FxRateQuote | None = None
        if not force_refresh:
            from_db = await self._load_from_db(base, quote)
            max_age = max_db_age_seconds or settings.fx_db_max_age
            if from_db is not None and _age_seconds(from_db.fetched_at, now) <= max_age:
                await self.cache.set(base, quote, from_db.rate, from_db.fetched_at, SOURCE_DB)
                return from_db

        try:
            rate = await self.provider.fetch_rate(base, quote)
        except FxRateUnavailableError:
            if from_db is not None:
                logger.warning("FX %s->%s: provider failed, using stale DB rate", base, quote)
                await self.cache.set(base, quote, from_db.rate, from_db.fetched_at, SOURCE_DB_STALE)
                return FxRateQuote(from_db.rate, from_db.fetched_at, SOURCE_DB_STALE)
            if cached is not None:
                logger.warning("FX %s->%s: provider failed, using stale cached rate", base, quote)
                return FxRateQuote(cached[0], cached[1], SOURCE_CACHE_STALE)
            raise

        await self.cache.set(base, quote, rate, now, SOURCE_API)
        await self._save_to_db(base, quote, rate, now)
        logger.info("FX %s->%s fetched from provider: %s", base, quote, rate)
        return FxRateQuote(rate=rate, fetched_at=now, source=SOURCE_API)

    async def _load_from_db(self, base: str, quote: str) -> FxRateQuote | None:
        if self.db is None:
            return None
        try:
            async with atomic(self.db):
                result = await self.db.execute(
                    select(FxRate)
                    .where(FxRate.base_currency == base, FxRate.quote_currency == quote)
                    .order_by(FxRate.as_of.desc())
                    .limit(1)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            if not is_missing_object_error(exc):
                logger.warning("FX %s->%s: DB lookup skipped: %s", base, quote, exc)
            return None
        if row is None:
            return None
        return FxRateQuote(rate=Decimal(str(row.rate)), fetched_at=row.as_of, source=SOURCE_DB)

    async def _save_to_db(self, base: str, quote: str, rate: Decimal, as_of: datetime) -> None:
        if self.db is None:
            return
        stmt = insert(FxRate).values(
            base_currency=base, quote_currency=quote, rate=rate, as_of=as_of
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_fx_rates_pair",
            set_={"rate": stmt.excluded.rate, "as_of": stmt.excluded.as_of},
        )
        try:
            async with atomic(self.db):
                await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            if not is_missing_object_error(exc):
                logger.warning("FX %s->%s: DB save skipped: %s", base, quote, exc)


def _age_seconds(fetched_at: datetime, now: datetime) -> float:
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=UTC)
    return (now - fetched_at).total_seconds()
