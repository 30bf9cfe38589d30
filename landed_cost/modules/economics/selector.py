"""Pick the cheapest option per (item, selection key) and snapshot the picks as a scenario."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.introspection import ColumnInfo, get_table_columns, table_exists
from landed_cost.database.session import atomic
from landed_cost.exceptions import BusinessRuleException
from landed_cost.models.auto_scenario import AutoScenario, AutoScenarioLine
from landed_cost.modules.economics.constants import (
    AUTO_SCENARIO_LINES_TABLE,
    AUTO_SCENARIO_NAME_TEMPLATE,
    DEFAULT_AUTO_STRATEGY,
)
from landed_cost.modules.economics.converter import RateSource
from landed_cost.modules.economics.line_options import LineOption, LineOptionService
from landed_cost.modules.economics.normalizer import to_trimmed_string_or_null

logger = logging.getLogger(__name__)

# Snapshot columns the selector fills, in insert order.
SNAPSHOT_COLUMNS: tuple[str, ...] = (
    "scenario_id",
    "rfq_item_id",
    "response_line_id",
    "selection_key_norm",
    "rfq_supplier_id",
    "supplier_id",
    "route_id",
    "goods_amount",
    "logistics_amount",
    "duty_amount",
    "landed_amount",
    "landed_currency",
    "eta_total_days",
    "supplier_score",
)
_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


@dataclass
class AutoScenarioResult:
    scenario_id: int
    name: str
    strategy: str
    picked_lines: int


def _beats(candidate: LineOption, current: LineOption) -> bool:
    """Lower landed wins; on an exact tie only a strictly lower ETA on both known sides wins."""
    if candidate.landed_amount < current.landed_amount:
        return True
    if candidate.landed_amount == current.landed_amount:
        if candidate.eta_total_days is None or current.eta_total_days is None:
            return False
        return candidate.eta_total_days < current.eta_total_days
    return False


def select_min_landed(
    options: list[LineOption],
    *,
    require_response_line: bool = False,
) -> list[LineOption]:
    """Pick at most one winner per ``(rfq_item_id, selection_key_raw)`` group.

    Options that are not comparable (no landed amount, flagged ``fx_missing``
    or without a landed currency), without an item id or (when required)
    without a response line are skipped. Winners are returned in first-seen
    group order.
    """
    winners: dict[tuple[int, str], LineOption] = {}
    for option in options:
        if not option.is_comparable:
            continue
        if require_response_line and not option.response_line_id:
            continue
        if not option.rfq_item_id:
            continue
        key = (option.rfq_item_id, option.selection_key_raw or option.selection_key_norm or "")
        current = winners.get(key)
        if current is None or _beats(option, current):
            winners[key] = option
    return list(winners.values())


def check_snapshot_columns(columns: list[ColumnInfo]) -> bool:
    """Validate the snapshot table and report whether ``response_line_id`` is mandatory.

    Raises ``BusinessRuleException`` when the table has required columns the
    selector cannot fill.
    """
    known = set(SNAPSHOT_COLUMNS) | _MANAGED_COLUMNS
    unknown_required = [
        c.name for c in columns if not c.nullable and not c.has_default and c.name not in known
    ]
    if unknown_required:
        raise BusinessRuleException(
            "Cannot build auto scenario: unknown required snapshot columns",
            details=[{"field": name, "message": "required column without default"} for name in unknown_required],
        )
    return any(
        c.name == "response_line_id" and not c.nullable and not c.has_default for c in columns
    )


def snapshot_values(option: LineOption, scenario_id: int, column_names: set[str]) -> dict:
    values = {
        "scenario_id": scenario_id,
        "rfq_item_id": option.rfq_item_id,
        "response_line_id": option.response_line_id,
        "selection_key_norm": option.selection_key_norm or None,
        "rfq_supplier_id": option.rfq_supplier_id,
        "supplier_id": option.supplier_id,
        "route_id": option.route_id,
        "goods_amount": option.goods_amount,
        "logistics_amount": option.logistics_amount,
        "duty_amount": option.duty_amount,
        "landed_amount": option.landed_amount,
        "landed_currency": option.landed_currency,
        "eta_total_days": option.eta_total_days,
        "supplier_score": option.supplier_score,
    }
    return {k: v for k, v in values.items() if k in column_names}


def default_scenario_name(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return AUTO_SCENARIO_NAME_TEMPLATE.format(ts=now.strftime("%Y-%m-%d %H:%M"))


class MinLandedSelectorService:
    def __init__(self, db: AsyncSession, rate_source: RateSource | None = None) -> None:
        self.db = db
        self.rate_source = rate_source
        self.line_options = LineOptionService(db)

    async def create_auto_scenario(
        self,
        rfq_id: int,
        name: str | None = None,
        strategy: str | None = None,
    ) -> AutoScenarioResult:
        if not await table_exists(self.db, AUTO_SCENARIO_LINES_TABLE):
            raise BusinessRuleException("Auto scenario tables are not available")

        views = await self.line_options.pick_views()
        if not views.line_view:
            raise BusinessRuleException("No economics line-option view is available")

        if views.is_norm and self.rate_source is not None:
            await self.line_options.preload_fx_rates(rfq_id, views.line_view, self.rate_source)
        options = await self.line_options.load_line_options(rfq_id, views.line_view)

        columns = await get_table_columns(self.db, AUTO_SCENARIO_LINES_TABLE)
        response_required = check_snapshot_columns(columns)
        column_names = {c.name for c in columns}

        winners = select_min_landed(options, require_response_line=response_required)
        scenario_name = to_trimmed_string_or_null(name) or default_scenario_name()
        scenario_strategy = to_trimmed_string_or_null(strategy) or DEFAULT_AUTO_STRATEGY

        async with atomic(self.db):
            scenario = AutoScenario(rfq_id=rfq_id, name=scenario_name, strategy=scenario_strategy)
            self.db.add(scenario)
            await self.db.flush()

            if winners and column_names:
                rows = [snapshot_values(w, scenario.id, column_names) for w in winners]
                await self.db.execute(insert(AutoScenarioLine), rows)

        logger.info(
            "Auto scenario %s created for RFQ %s: %d of %d options picked",
            scenario.id,
            rfq_id,
            len(winners),
            len(options),
        )
        return AutoScenarioResult(
            scenario_id=scenario.id,
            name=scenario_name,
            strategy=scenario_strategy,
            picked_lines=len(winners),
        )
