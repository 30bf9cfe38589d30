"""Scenario recalculator — roll selected group routes and their items into scenario totals.

Totals are recomputed from scratch on every call; nothing is adjusted
incrementally, so calling it twice on unchanged inputs yields the same row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.session import atomic
from landed_cost.exceptions import BusinessRuleException
from landed_cost.models.candidate_set import CandidateItem
from landed_cost.models.enums import CalcStatus, ScenarioStatus
from landed_cost.models.scenario import EconScenario, ScenarioGroupRoute, ScenarioOtherCost
from landed_cost.models.shipment_group import ShipmentGroupItem
from landed_cost.modules.economics.converter import CurrencyConverter
from landed_cost.modules.economics.normalizer import quantize_money, to_decimal_or_null
from landed_cost.modules.economics.scenarios import ScenarioService

logger = logging.getLogger(__name__)

ROUTE_ERROR_STATUSES = frozenset({CalcStatus.ERROR, CalcStatus.NOT_APPLICABLE, CalcStatus.DRAFT})


@dataclass(frozen=True)
class ItemLine:
    candidate_item_id: int
    goods_amount: Decimal | None
    goods_currency: str | None
    qty: Decimal | None
    qty_override: Decimal | None


@dataclass(frozen=True)
class ConversionWarning:
    source: str
    ref_id: int
    reason: str


@dataclass
class ScenarioTotals:
    goods_total: Decimal = Decimal(0)
    logistics_total: Decimal = Decimal(0)
    duty_total: Decimal = Decimal(0)
    other_total: Decimal = Decimal(0)
    eta_best_days: int | None = None
    eta_worst_days: int | None = None
    selected_groups: int = 0
    route_errors: int = 0
    route_warnings: int = 0
    warnings: list[ConversionWarning] = field(default_factory=list)

    @property
    def landed_total(self) -> Decimal:
        return self.goods_total + self.logistics_total + self.duty_total + self.other_total

    @property
    def warning_count(self) -> int:
        return len(self.warnings) + self.route_warnings + self.route_errors

    @property
    def status(self) -> ScenarioStatus:
        if self.selected_groups > 0 and self.route_errors == 0:
            return ScenarioStatus.CALCULATED
        return ScenarioStatus.DRAFT


def effective_goods_amount(item: ItemLine) -> Decimal | None:
    """Scale the goods amount by ``qty_override / qty`` when both are positive and differ."""
    amount = to_decimal_or_null(item.goods_amount)
    if amount is None:
        return None
    base_qty = to_decimal_or_null(item.qty)
    override = to_decimal_or_null(item.qty_override)
    if base_qty and override and base_qty > 0 and override > 0 and base_qty != override:
        return amount * override / base_qty
    return amount


def _max_or_none(current: int | None, value: int | None) -> int | None:
    if value is None:
        return current
    return value if current is None else max(current, value)


async def compute_totals(
    converter: CurrencyConverter,
    target_currency: str,
    items: list[ItemLine],
    routes: list,
    other_costs: list,
) -> ScenarioTotals:
    """Aggregate goods, logistics, duty and other costs into ``target_currency``.

    ``routes`` are the selected group routes; ``other_costs`` the enabled
    other-cost lines. Conversion failures become warnings, never exceptions.
    """
    totals = ScenarioTotals(selected_groups=len(routes))
    goods = Decimal(0)
    logistics = Decimal(0)
    duty = Decimal(0)
    other = Decimal(0)

    for item in items:
        conversion = await converter.convert(
            effective_goods_amount(item), item.goods_currency, target_currency
        )
        if conversion.converted:
            goods += conversion.value
        else:
            totals.warnings.append(
                ConversionWarning("item", item.candidate_item_id, conversion.warning)
            )

    for route in routes:
        status = CalcStatus(route.calc_status)
        if status in ROUTE_ERROR_STATUSES:
            totals.route_errors += 1
        else:
            if status == CalcStatus.WARNING:
                totals.route_warnings += 1
            conversion = await converter.convert(
                route.logistics_amount_calc, route.currency, target_currency
            )
            if conversion.converted:
                logistics += conversion.value
            else:
                totals.warnings.append(ConversionWarning("route", route.id, conversion.warning))

        if route.duty_amount is not None:
            conversion = await converter.convert(
                route.duty_amount, route.duty_currency or route.currency, target_currency
            )
            if conversion.converted:
                duty += conversion.value
            else:
                totals.warnings.append(ConversionWarning("duty", route.id, conversion.warning))

        totals.eta_best_days = _max_or_none(totals.eta_best_days, route.eta_min_days_calc)
        totals.eta_worst_days = _max_or_none(totals.eta_worst_days, route.eta_max_days_calc)

    for cost in other_costs:
        amount = to_decimal_or_null(cost.amount)
        quantity = to_decimal_or_null(cost.quantity)
        line_amount = amount * (quantity if quantity is not None else Decimal(1)) if amount is not None else None
        conversion = await converter.convert(line_amount, cost.currency, target_currency)
        if conversion.converted:
            other += conversion.value
        else:
            totals.warnings.append(ConversionWarning("other_cost", cost.id, conversion.warning))

    totals.goods_total = quantize_money(goods)
    totals.logistics_total = quantize_money(logistics)
    totals.duty_total = quantize_money(duty)
    totals.other_total = quantize_money(other)
    return totals


class ScenarioRecalculator:
    def __init__(self, db: AsyncSession, converter: CurrencyConverter) -> None:
        self.db = db
        self.converter = converter

    async def recalculate(self, scenario_id: int) -> tuple[EconScenario, ScenarioTotals]:
        scenario = await ScenarioService(self.db).get_scenario(scenario_id)
        if scenario.status == ScenarioStatus.ARCHIVED:
            raise BusinessRuleException(f"Scenario {scenario_id} is archived")

        routes = await self._selected_routes(scenario_id)
        items = await self._included_items([r.shipment_group_id for r in routes])
        other_costs = await self._enabled_other_costs(scenario_id)

        totals = await compute_totals(
            self.converter, scenario.calc_currency, items, routes, other_costs
        )

        async with atomic(self.db):
            scenario.goods_total = totals.goods_total
            scenario.logistics_total = totals.logistics_total
            scenario.duty_total = totals.duty_total
            scenario.other_total = totals.other_total
            scenario.landed_total = totals.landed_total
            scenario.eta_best_days = totals.eta_best_days
            scenario.eta_worst_days = totals.eta_worst_days
            scenario.warning_count = totals.warning_count
            if not (scenario.status == ScenarioStatus.SELECTED and totals.status == ScenarioStatus.CALCULATED):
                scenario.status = totals.status
            await self.db.flush()

        logger.info(
            "Scenario %s recalculated: landed=%s %s, status=%s, warnings=%d, route_errors=%d",
            scenario_id,
            totals.landed_total,
            scenario.calc_currency,
            totals.status.value,
            totals.warning_count,
            totals.route_errors,
        )
        return scenario, totals

    async def _selected_routes(self, scenario_id: int) -> list[ScenarioGroupRoute]:
        result = await self.db.execute(
            select(ScenarioGroupRoute)
            .where(
                ScenarioGroupRoute.scenario_id == scenario_id,
                ScenarioGroupRoute.selected_for_scenario.is_(True),
            )
            .order_by(ScenarioGroupRoute.id)
        )
        return list(result.scalars().all())

    async def _included_items(self, group_ids: list[int]) -> list[ItemLine]:
        if not group_ids:
            return []
        result = await self.db.execute(
            select(
                CandidateItem.id,
                CandidateItem.goods_amount,
                CandidateItem.goods_currency,
                CandidateItem.qty,
                ShipmentGroupItem.qty_override,
            )
            .join(ShipmentGroupItem, ShipmentGroupItem.candidate_item_id == CandidateItem.id)
            .where(
                ShipmentGroupItem.shipment_group_id.in_(group_ids),
                ShipmentGroupItem.included.is_(True),
            )
            .order_by(ShipmentGroupItem.shipment_group_id, ShipmentGroupItem.sort_order)
        )
        return [
            ItemLine(
                candidate_item_id=row.id,
                goods_amount=row.goods_amount,
                goods_currency=row.goods_currency,
                qty=row.qty,
                qty_override=row.qty_override,
            )
            for row in result
        ]

    async def _enabled_other_costs(self, scenario_id: int) -> list[ScenarioOtherCost]:
        result = await self.db.execute(
            select(ScenarioOtherCost)
            .where(ScenarioOtherCost.scenario_id == scenario_id, ScenarioOtherCost.enabled.is_(True))
            .order_by(ScenarioOtherCost.id)
        )
        return list(result.scalars().all())
