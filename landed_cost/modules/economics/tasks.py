"""Celery tasks for the economics engine."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from landed_cost.database.engine import async_session

logger = logging.getLogger(__name__)


# ── Async implementations ────────────────────────────────────────────────────


async def _preload_fx_rates_async(rfq_id: int, target_currency: str | None) -> dict:
    """Warm the FX cache for every currency pair an RFQ's line options need."""
    from landed_cost.modules.economics.fx import FxRateService, HttpFxProvider
    from landed_cost.modules.economics.line_options import LineOptionService

    provider = HttpFxProvider()
    async with async_session() as session:
        try:
            service = LineOptionService(session)
            views = await service.pick_views()
            if not views.line_view:
                logger.info("No line-option view available, skipping FX preload for RFQ %s", rfq_id)
                return {"rfq_id": rfq_id, "target_currency": None, "requested": [], "failed": []}

            report = await service.preload_fx_rates(
                rfq_id,
                views.line_view,
                FxRateService(session, provider=provider),
                target_currency_hint=target_currency,
            )
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("FX preload failed for RFQ %s", rfq_id)
            raise
        finally:
            await provider.aclose()

    logger.info(
        "FX preload for RFQ %s -> %s: %d requested, %d failed",
        rfq_id,
        report.target_currency,
        len(report.requested),
        len(report.failed),
    )
    return {
        "rfq_id": rfq_id,
        "target_currency": report.target_currency,
        "requested": report.requested,
        "failed": report.failed,
    }


# ── Celery task definitions ──────────────────────────────────────────────────


@celery.task(
    name="landed_cost.modules.economics.tasks.preload_fx_rates",
    bind=True,
    max_retries=3,
)
def preload_fx_rates(self, rfq_id: int, target_currency: str | None = None) -> dict:
    """Preload FX rates for an RFQ ahead of dashboard or scenario work."""
    try:
        return asyncio.run(_preload_fx_rates_async(rfq_id, target_currency))
    except Exception as exc:
        logger.exception("preload_fx_rates failed for RFQ %s", rfq_id)
        raise self.retry(exc=exc, countdown=60)
