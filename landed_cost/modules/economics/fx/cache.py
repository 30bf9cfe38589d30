"""Redis-backed FX rate cache.

Entries outlive their freshness window (``fx_cache_retention_seconds``) so a
stale rate is still available as a last-resort fallback; freshness is judged
by the caller from ``fetched_at``.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal

import redis.asyncio as redis

from landed_cost.config import settings

logger = logging.getLogger(__name__)

CACHE_PREFIX = "fx"


class FxRateCache:
    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self._redis = redis_client

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(settings.redis_url, decode_responses=True)
        return self._redis

    @staticmethod
    def make_key(base: str, quote: str) -> str:
        return f"{CACHE_PREFIX}:{base}->{quote}"

    async def get(self, base: str, quote: str) -> tuple[Decimal, datetime, str] | None:
        """Return ``(rate, fetched_at, source)`` or None on miss or cache failure."""
        try:
            client = await self._get_redis()
            raw = await client.get(self.make_key(base, quote))
        except redis.RedisError as exc:
            logger.warning("FX cache read failed for %s->%s: %s", base, quote, exc)
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            return (
                Decimal(entry["rate"]),
                datetime.fromisoformat(entry["fetched_at"]),
                entry.get("source", "cache"),
            )
        except (KeyError, ValueError, ArithmeticError):
            logger.warning("FX cache entry for %s->%s is malformed, ignoring", base, quote)
            return None

    async def set(
        self,
        base: str,
        quote: str,
        rate: Decimal,
        fetched_at: datetime,
        source: str,
        ttl: int | None = None,
    ) -> None:
        payload = {"rate": str(rate), "fetched_at": fetched_at.isoformat(), "source": source}
        try:
            client = await self._get_redis()
            await client.set(
                self.make_key(base, quote),
                json.dumps(payload),
                ex=ttl or settings.fx_cache_retention_seconds,
            )
        except redis.RedisError as exc:
            logger.warning("FX cache write failed for %s->%s: %s", base, quote, exc)
