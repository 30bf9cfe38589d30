"""Priced scenarios: drafts from a candidate set, group route assignment and other costs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.config import settings
from landed_cost.database.session import atomic
from landed_cost.exceptions import BusinessRuleException, NotFoundException
from landed_cost.models.candidate_set import CandidateItem
from landed_cost.models.enums import (
    CalcStatus,
    RouteSourceType,
    ScenarioStatus,
    ScenarioStrategy,
    ShipmentGroupStatus,
)
from landed_cost.models.route_template import RouteTemplate
from landed_cost.models.scenario import EconScenario, ScenarioGroupRoute, ScenarioOtherCost
from landed_cost.models.shipment_group import ShipmentGroup, ShipmentGroupItem
from landed_cost.modules.economics.candidates import CandidateImportService
from landed_cost.modules.economics.constants import DRAFT_SCENARIO_NAME_TEMPLATE
from landed_cost.modules.economics.grouping import ShipmentGroupService
from landed_cost.modules.economics.normalizer import to_currency_code, to_trimmed_string_or_null
from landed_cost.modules.economics.route_pricing import calc_route_amount, chargeable_measures
from landed_cost.modules.economics.schemas import GroupRouteAssign, OtherCostCreate

logger = logging.getLogger(__name__)

SOURCE_AUTO_FROM_COVERAGE = "auto_from_coverage"

_STATUS_ORDER = [
    ScenarioStatus.SELECTED,
    ScenarioStatus.CALCULATED,
    ScenarioStatus.DRAFT,
    ScenarioStatus.ARCHIVED,
]


def normalize_strategy(value: object) -> ScenarioStrategy:
    """Whitelisted strategy name, anything else is MANUAL."""
    candidate = str(value or "").strip().upper()
    try:
        return ScenarioStrategy(candidate)
    except ValueError:
        return ScenarioStrategy.MANUAL


def initial_goods_total(
    goods_sum: Decimal | None,
    currency_count: int,
    currency_hint: str | None,
    calc_currency: str,
) -> Decimal | None:
    """Goods total is only known up front when every item already is in the calc currency."""
    if currency_count != 1 or goods_sum is None:
        return None
    if to_currency_code(currency_hint) != calc_currency:
        return None
    return goods_sum


class ScenarioService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_scenario(self, scenario_id: int) -> EconScenario:
        result = await self.db.execute(select(EconScenario).where(EconScenario.id == scenario_id))
        scenario = result.scalar_one_or_none()
        if scenario is None:
            raise NotFoundException(f"Scenario {scenario_id} not found")
        return scenario

    async def list_scenarios(self, rfq_id: int, candidate_set_id: int | None = None) -> list[EconScenario]:
        status_rank = case(
            {status.value: rank for rank, status in enumerate(_STATUS_ORDER)},
            value=EconScenario.status,
            else_=len(_STATUS_ORDER),
        )
        query = select(EconScenario).where(EconScenario.rfq_id == rfq_id)
        if candidate_set_id:
            query = query.where(EconScenario.candidate_set_id == candidate_set_id)
        query = query.order_by(
            status_rank,
            EconScenario.landed_total.asc().nulls_last(),
            EconScenario.id.desc(),
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ── Draft creation ───────────────────────────────────────────────────────

    async def create_draft(
        self,
        rfq_id: int,
        candidate_set_id: int,
        *,
        name: str | None = None,
        strategy: str | None = None,
        calc_currency: str | None = None,
    ) -> tuple[EconScenario, int]:
        """Create a draft scenario with one unpriced template route per shipment group.

        Returns the scenario and the number of groups attached.
        """
        currency = to_currency_code(calc_currency) or settings.economics_default_currency
        async with atomic(self.db):
            candidate = await CandidateImportService(self.db).get_active_candidate_set(
                rfq_id, candidate_set_id
            )
            group_filter = (
                ShipmentGroup.rfq_id == rfq_id,
                ShipmentGroup.candidate_set_id == candidate_set_id,
                ShipmentGroup.status != ShipmentGroupStatus.ARCHIVED,
            )
            groups_result = await self.db.execute(
                select(ShipmentGroup.id)
                .where(*group_filter)
                .order_by(ShipmentGroup.sort_order, ShipmentGroup.id)
            )
            group_ids = list(groups_result.scalars().all())
            if not group_ids:
                raise BusinessRuleException(
                    f"Create shipment groups for candidate set {candidate_set_id} first"
                )

            agg_result = await self.db.execute(
                select(
                    func.sum(CandidateItem.goods_amount).label("goods_sum"),
                    func.count(func.distinct(func.nullif(CandidateItem.goods_currency, ""))).label(
                        "currency_count"
                    ),
                    func.min(func.nullif(CandidateItem.goods_currency, "")).label("currency_hint"),
                )
                .select_from(ShipmentGroupItem)
                .join(ShipmentGroup, ShipmentGroup.id == ShipmentGroupItem.shipment_group_id)
                .join(CandidateItem, CandidateItem.id == ShipmentGroupItem.candidate_item_id)
                .where(*group_filter, ShipmentGroupItem.included.is_(True))
            )
            agg = agg_result.one()

            scenario = EconScenario(
                rfq_id=rfq_id,
                candidate_set_id=candidate_set_id,
                name=to_trimmed_string_or_null(name)
                or DRAFT_SCENARIO_NAME_TEMPLATE.format(ts=datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")),
                source_type=SOURCE_AUTO_FROM_COVERAGE,
                strategy=normalize_strategy(strategy),
                calc_currency=currency,
                status=ScenarioStatus.DRAFT,
                goods_total=initial_goods_total(
                    agg.goods_sum, int(agg.currency_count or 0), agg.currency_hint, currency
                ),
                coverage_progress_pct=candidate.progress_structure_pct or Decimal(0),
                priced_progress_pct=candidate.progress_priced_pct or Decimal(0),
                oem_ok=bool(candidate.oem_ok),
                warning_count=0,
            )
            self.db.add(scenario)
            await self.db.flush()

            self.db.add_all(
                ScenarioGroupRoute(
                    scenario_id=scenario.id,
                    shipment_group_id=group_id,
                    route_source_type=RouteSourceType.TEMPLATE,
                    calc_status=CalcStatus.DRAFT,
                    selected_for_scenario=True,
                )
                for group_id in group_ids
            )
            await self.db.flush()

        logger.info(
            "Draft scenario %s created for RFQ %s candidate set %s with %d groups",
            scenario.id,
            rfq_id,
            candidate_set_id,
            len(group_ids),
        )
        return scenario, len(group_ids)

    # ── Group routes ─────────────────────────────────────────────────────────

    async def assign_group_route(
        self,
        scenario_id: int,
        group_id: int,
        body: GroupRouteAssign,
    ) -> ScenarioGroupRoute:
        """Price one shipment group inside a scenario and persist the outcome verbatim."""
        scenario = await self.get_scenario(scenario_id)
        group = await ShipmentGroupService(self.db).get_group(group_id)
        if group.rfq_id != scenario.rfq_id:
            raise BusinessRuleException(
                f"Shipment group {group_id} does not belong to RFQ {scenario.rfq_id}"
            )

        if body.route_source_type == RouteSourceType.TEMPLATE:
            template = await self._get_template(body.route_template_id)
            tariff = {
                "pricing_model": template.pricing_model,
                "currency": to_currency_code(template.currency),
                "fixed_cost": template.fixed_cost,
                "rate_per_kg": template.rate_per_kg,
                "rate_per_cbm": template.rate_per_cbm,
                "min_cost": template.min_cost,
                "markup_pct": template.markup_pct,
                "markup_fixed": template.markup_fixed,
            }
            eta_min, eta_max = template.eta_min_days, template.eta_max_days
            rounding = {
                "round_step_kg": template.round_step_kg,
                "round_step_cbm": template.round_step_cbm,
                "volumetric_kg_per_cbm": template.volumetric_kg_per_cbm,
            }
        else:
            tariff = {
                "pricing_model": body.pricing_model,
                "currency": to_currency_code(body.currency),
                "fixed_cost": body.fixed_cost,
                "rate_per_kg": body.rate_per_kg,
                "rate_per_cbm": body.rate_per_cbm,
                "min_cost": body.min_cost,
                "markup_pct": body.markup_pct,
                "markup_fixed": body.markup_fixed,
            }
            eta_min, eta_max = body.eta_min_days, body.eta_max_days
            rounding = {}

        model = tariff["pricing_model"]
        model_value = getattr(model, "value", model)
        measures = chargeable_measures(
            model_value,
            body.weight_kg if body.weight_kg is not None else group.total_weight_kg,
            body.volume_cbm if body.volume_cbm is not None else group.total_volume_cbm,
            **rounding,
        )
        priced = calc_route_amount(
            model_value,
            fixed_cost=tariff["fixed_cost"],
            rate_per_kg=tariff["rate_per_kg"],
            rate_per_cbm=tariff["rate_per_cbm"],
            min_cost=tariff["min_cost"],
            markup_pct=tariff["markup_pct"],
            markup_fixed=tariff["markup_fixed"],
            weight_kg=measures.weight_kg,
            volume_cbm=measures.volume_cbm,
        )

        async with atomic(self.db):
            result = await self.db.execute(
                select(ScenarioGroupRoute).where(
                    ScenarioGroupRoute.scenario_id == scenario_id,
                    ScenarioGroupRoute.shipment_group_id == group_id,
                )
            )
            route = result.scalar_one_or_none()
            if route is None:
                route = ScenarioGroupRoute(scenario_id=scenario_id, shipment_group_id=group_id)
                self.db.add(route)

            route.route_source_type = body.route_source_type
            route.route_template_id = (
                body.route_template_id if body.route_source_type == RouteSourceType.TEMPLATE else None
            )
            for key, value in tariff.items():
                setattr(route, key, value)
            route.weight_kg = measures.weight_kg
            route.volume_cbm = measures.volume_cbm
            route.logistics_amount_calc = priced.amount
            route.eta_min_days_calc = eta_min
            route.eta_max_days_calc = eta_max
            route.calc_status = priced.status
            route.calc_message = priced.message
            route.duty_amount = body.duty_amount
            route.duty_currency = to_currency_code(body.duty_currency) if body.duty_amount is not None else None
            route.selected_for_scenario = body.selected_for_scenario
            await self.db.flush()

        logger.info(
            "Scenario %s group %s priced via %s: status=%s amount=%s",
            scenario_id,
            group_id,
            model_value,
            priced.status.value,
            priced.amount,
        )
        return route

    async def _get_template(self, template_id: int | None) -> RouteTemplate:
        result = await self.db.execute(
            select(RouteTemplate).where(
                RouteTemplate.id == template_id, RouteTemplate.is_active.is_(True)
            )
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundException(f"Route template {template_id} not found")
        return template

    # ── Other costs ──────────────────────────────────────────────────────────

    async def add_other_cost(self, scenario_id: int, body: OtherCostCreate) -> ScenarioOtherCost:
        await self.get_scenario(scenario_id)
        cost = ScenarioOtherCost(
            scenario_id=scenario_id,
            name=body.name.strip(),
            amount=body.amount,
            currency=to_currency_code(body.currency),
            quantity=body.quantity,
            enabled=body.enabled,
        )
        async with atomic(self.db):
            self.db.add(cost)
            await self.db.flush()
        logger.info("Other cost %r added to scenario %s", cost.name, scenario_id)
        return cost
