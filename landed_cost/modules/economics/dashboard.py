"""Economics dashboard for one RFQ."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.models.auto_scenario import AutoScenario, AutoScenarioLine
from landed_cost.modules.economics.converter import RateSource
from landed_cost.modules.economics.line_options import LineOptionService
from landed_cost.modules.economics.normalizer import to_currency_code

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(self, db: AsyncSession, rate_source: RateSource | None = None) -> None:
        self.db = db
        self.rate_source = rate_source
        self.line_options = LineOptionService(db)

    async def get_dashboard(self, rfq_id: int) -> dict[str, Any]:
        views = await self.line_options.pick_views()
        if views.is_norm and self.rate_source is not None:
            await self.line_options.preload_fx_rates(rfq_id, views.line_view, self.rate_source)

        lines = await self.line_options.load_line_options(rfq_id, views.line_view)
        suppliers = await self.line_options.load_supplier_summary(rfq_id, views.supplier_view, lines)
        scenarios = await self.scenario_summaries(rfq_id)
        latest = scenarios[0] if scenarios else None
        latest_lines = await self.scenario_lines(latest["scenario_id"]) if latest else []

        logger.debug(
            "Dashboard for RFQ %s: %d lines, %d supplier rows, %d scenarios",
            rfq_id,
            len(lines),
            len(suppliers),
            len(scenarios),
        )
        return {
            "rfq_id": rfq_id,
            "target_currency": await self.line_options.get_target_currency(rfq_id),
            "source": {"line_view": views.line_view, "supplier_view": views.supplier_view},
            "suppliers": suppliers,
            "lines": lines,
            "scenarios": scenarios,
            "latest_scenario_id": latest["scenario_id"] if latest else None,
            "latest_scenario_name": latest["name"] if latest else None,
            "latest_scenario_lines": latest_lines,
        }

    async def scenario_summaries(self, rfq_id: int) -> list[dict[str, Any]]:
        """Per auto scenario: picked lines, totals, ETA and a currency hint, newest first."""
        result = await self.db.execute(
            select(
                AutoScenario.id.label("scenario_id"),
                AutoScenario.name,
                AutoScenario.strategy,
                AutoScenario.created_at,
                func.count(AutoScenarioLine.id).label("picked_lines"),
                func.sum(AutoScenarioLine.goods_amount).label("goods_total"),
                func.sum(AutoScenarioLine.logistics_amount).label("logistics_total"),
                func.sum(AutoScenarioLine.duty_amount).label("duty_total"),
                func.sum(AutoScenarioLine.landed_amount).label("landed_total"),
                func.count(func.distinct(AutoScenarioLine.landed_currency)).label("currency_count"),
                func.min(AutoScenarioLine.landed_currency).label("currency_min"),
                func.max(AutoScenarioLine.eta_total_days).label("eta_days_worst"),
                func.avg(AutoScenarioLine.eta_total_days).label("eta_days_avg"),
                func.avg(AutoScenarioLine.supplier_score).label("avg_supplier_score"),
            )
            .outerjoin(AutoScenarioLine, AutoScenarioLine.scenario_id == AutoScenario.id)
            .where(AutoScenario.rfq_id == rfq_id)
            .group_by(AutoScenario.id)
            .order_by(AutoScenario.id.desc())
        )
        summaries = []
        for row in result.mappings().all():
            summary = dict(row)
            currency_count = summary.pop("currency_count") or 0
            currency_min = summary.pop("currency_min")
            summary["currency_hint"] = to_currency_code(currency_min) if currency_count == 1 else None
            summaries.append(summary)
        return summaries

    async def scenario_lines(self, scenario_id: int) -> list[AutoScenarioLine]:
        result = await self.db.execute(
            select(AutoScenarioLine)
            .where(AutoScenarioLine.scenario_id == scenario_id)
            .order_by(AutoScenarioLine.selection_key_norm, AutoScenarioLine.id)
        )
        return list(result.scalars().all())
