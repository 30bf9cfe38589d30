import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.engine import async_session

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a database session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await _safe_rollback(session)
            raise


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block inside a SAVEPOINT so it is written entirely or not at all.

    A failing rollback is logged and swallowed; the original exception is the
    one that propagates.
    """
    savepoint = await session.begin_nested()
    try:
        yield session
    except Exception:
        await _safe_rollback(savepoint)
        raise
    await savepoint.commit()


async def _safe_rollback(target) -> None:
    try:
        await target.rollback()
    except Exception:
        logger.exception("Rollback failed")
