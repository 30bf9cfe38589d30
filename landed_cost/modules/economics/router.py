"""Economics API router — dashboard, auto scenarios, candidates, shipment groups and v2 scenarios."""

from fastapi import APIRouter, Depends, Query, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.session import get_db
from landed_cost.modules.economics.candidates import CandidateImportService
from landed_cost.modules.economics.converter import CurrencyConverter
from landed_cost.modules.economics.dashboard import DashboardService
from landed_cost.modules.economics.fx import FxRateCache, FxRateService, HttpFxProvider
from landed_cost.modules.economics.grouping import ShipmentGroupService
from landed_cost.modules.economics.recalculator import ScenarioRecalculator
from landed_cost.modules.economics.route_pricing import calc_route_amount, chargeable_measures
from landed_cost.modules.economics.scenarios import ScenarioService
from landed_cost.modules.economics.schemas import (
    AutoGroupRequest,
    AutoGroupResponse,
    AutoScenarioRequest,
    AutoScenarioResponse,
    CandidateImportRequest,
    CandidateImportResponse,
    CandidateListResponse,
    CandidateSetResponse,
    ConversionWarningResponse,
    DashboardResponse,
    DraftScenarioRequest,
    DraftScenarioResponse,
    EconScenarioResponse,
    GroupMeasuresUpdate,
    GroupRouteAssign,
    GroupRouteResponse,
    OtherCostCreate,
    OtherCostResponse,
    RecalculationResponse,
    RoutePricingPreviewRequest,
    RoutePricingPreviewResponse,
    ScenarioListResponse,
    ShipmentGroupListResponse,
    ShipmentGroupResponse,
)
from landed_cost.modules.economics.selector import MinLandedSelectorService

router = APIRouter(prefix="/economics", tags=["Economics"])
limiter = Limiter(key_func=get_remote_address)

# Shared across requests: the Redis pool and the HTTP client
fx_cache = FxRateCache()
fx_provider = HttpFxProvider()


def _get_rate_source(db: AsyncSession = Depends(get_db)) -> FxRateService:
    return FxRateService(db, cache=fx_cache, provider=fx_provider)


# ── 1. GET /economics/rfq/{rfq_id}/dashboard ────────────────────────────────


@router.get("/rfq/{rfq_id}/dashboard", response_model=DashboardResponse)
@limiter.limit("30/minute")
async def get_dashboard(
    request: Request,
    rfq_id: int,
    db: AsyncSession = Depends(get_db),
    rate_source: FxRateService = Depends(_get_rate_source),
) -> DashboardResponse:
    """Line options, supplier summaries and auto scenarios for an RFQ."""
    service = DashboardService(db, rate_source)
    return DashboardResponse.model_validate(
        await service.get_dashboard(rfq_id), from_attributes=True
    )


# ── 2. POST /economics/rfq/{rfq_id}/scenarios/auto-min-landed ───────────────


@router.post(
    "/rfq/{rfq_id}/scenarios/auto-min-landed",
    response_model=AutoScenarioResponse,
    status_code=201,
)
async def create_auto_min_landed(
    rfq_id: int,
    body: AutoScenarioRequest | None = None,
    db: AsyncSession = Depends(get_db),
    rate_source: FxRateService = Depends(_get_rate_source),
) -> AutoScenarioResponse:
    """Snapshot the cheapest comparable option per RFQ line."""
    body = body or AutoScenarioRequest()
    service = MinLandedSelectorService(db, rate_source)
    result = await service.create_auto_scenario(rfq_id, name=body.name, strategy=body.strategy)
    return AutoScenarioResponse.model_validate(result)


# ── 3. GET /economics/v2/rfq/{rfq_id}/candidates ────────────────────────────


@router.get("/v2/rfq/{rfq_id}/candidates", response_model=CandidateListResponse)
async def list_candidates(
    rfq_id: int,
    rfq_item_id: int | None = Query(default=None, gt=0),
    db: AsyncSession = Depends(get_db),
) -> CandidateListResponse:
    rows = await CandidateImportService(db).list_candidate_sets(rfq_id, rfq_item_id)
    return CandidateListResponse(
        rfq_id=rfq_id,
        rfq_item_id=rfq_item_id,
        count=len(rows),
        rows=[CandidateSetResponse.model_validate(r) for r in rows],
    )


# ── 4. POST /economics/v2/rfq/{rfq_id}/candidates/import ────────────────────


@router.post("/v2/rfq/{rfq_id}/candidates/import", response_model=CandidateImportResponse)
@limiter.limit("20/minute")
async def import_candidates(
    request: Request,
    rfq_id: int,
    body: CandidateImportRequest,
    db: AsyncSession = Depends(get_db),
) -> CandidateImportResponse:
    """Import scored supplier combinations as candidate sets (idempotent per combination)."""
    result = await CandidateImportService(db).import_combinations(
        rfq_id, body.rfq_item_id, body.combos
    )
    return CandidateImportResponse.model_validate(result)


# ── 5. GET /economics/v2/rfq/{rfq_id}/shipment-groups ───────────────────────


@router.get("/v2/rfq/{rfq_id}/shipment-groups", response_model=ShipmentGroupListResponse)
async def list_shipment_groups(
    rfq_id: int,
    candidate_set_id: int | None = Query(default=None, gt=0),
    db: AsyncSession = Depends(get_db),
) -> ShipmentGroupListResponse:
    rows = await ShipmentGroupService(db).list_groups(rfq_id, candidate_set_id)
    return ShipmentGroupListResponse(
        rfq_id=rfq_id,
        candidate_set_id=candidate_set_id,
        count=len(rows),
        rows=[ShipmentGroupResponse.model_validate(r) for r in rows],
    )


# ── 6. POST /economics/v2/rfq/{rfq_id}/shipment-groups/auto-from-candidate ──


@router.post(
    "/v2/rfq/{rfq_id}/shipment-groups/auto-from-candidate",
    response_model=AutoGroupResponse,
    status_code=201,
)
async def auto_group_from_candidate(
    rfq_id: int,
    body: AutoGroupRequest,
    db: AsyncSession = Depends(get_db),
) -> AutoGroupResponse:
    """Group a candidate set's items into shipment groups by origin country."""
    groups = await ShipmentGroupService(db).auto_from_candidate(
        rfq_id,
        body.candidate_set_id,
        to_country=body.to_country,
        replace_existing=body.replace_existing,
        strategy=body.strategy,
    )
    return AutoGroupResponse(
        rfq_id=rfq_id,
        candidate_set_id=body.candidate_set_id,
        created_count=len(groups),
        rows=[ShipmentGroupResponse.model_validate(g) for g in groups],
    )


# ── 7. PATCH /economics/v2/shipment-groups/{group_id}/measures ──────────────


@router.patch("/v2/shipment-groups/{group_id}/measures", response_model=ShipmentGroupResponse)
async def update_group_measures(
    group_id: int,
    body: GroupMeasuresUpdate,
    db: AsyncSession = Depends(get_db),
) -> ShipmentGroupResponse:
    group = await ShipmentGroupService(db).update_measures(
        group_id, body.total_weight_kg, body.total_volume_cbm
    )
    return ShipmentGroupResponse.model_validate(group)


# ── 8. DELETE /economics/v2/shipment-groups/{group_id} ──────────────────────


@router.delete("/v2/shipment-groups/{group_id}", status_code=204)
async def delete_shipment_group(
    group_id: int,
    db: AsyncSession = Depends(get_db),
) -> Response:
    await ShipmentGroupService(db).delete_group(group_id)
    return Response(status_code=204)


# ── 9. GET /economics/v2/rfq/{rfq_id}/scenarios ─────────────────────────────


@router.get("/v2/rfq/{rfq_id}/scenarios", response_model=ScenarioListResponse)
async def list_scenarios(
    rfq_id: int,
    candidate_set_id: int | None = Query(default=None, gt=0),
    db: AsyncSession = Depends(get_db),
) -> ScenarioListResponse:
    rows = await ScenarioService(db).list_scenarios(rfq_id, candidate_set_id)
    return ScenarioListResponse(
        rfq_id=rfq_id,
        candidate_set_id=candidate_set_id,
        count=len(rows),
        rows=[EconScenarioResponse.model_validate(r) for r in rows],
    )


# ── 10. POST /economics/v2/rfq/{rfq_id}/scenarios/draft ─────────────────────


@router.post(
    "/v2/rfq/{rfq_id}/scenarios/draft",
    response_model=DraftScenarioResponse,
    status_code=201,
)
async def create_draft_scenario(
    rfq_id: int,
    body: DraftScenarioRequest,
    db: AsyncSession = Depends(get_db),
) -> DraftScenarioResponse:
    scenario, groups_attached = await ScenarioService(db).create_draft(
        rfq_id,
        body.candidate_set_id,
        name=body.name,
        strategy=body.strategy,
        calc_currency=body.calc_currency,
    )
    return DraftScenarioResponse(
        scenario=EconScenarioResponse.model_validate(scenario),
        groups_attached=groups_attached,
    )


# ── 11. PUT /economics/v2/scenarios/{scenario_id}/groups/{group_id}/route ───


@router.put(
    "/v2/scenarios/{scenario_id}/groups/{group_id}/route",
    response_model=GroupRouteResponse,
)
async def assign_group_route(
    scenario_id: int,
    group_id: int,
    body: GroupRouteAssign,
    db: AsyncSession = Depends(get_db),
) -> GroupRouteResponse:
    """Price a shipment group with a route template or an ad-hoc tariff."""
    route = await ScenarioService(db).assign_group_route(scenario_id, group_id, body)
    return GroupRouteResponse.model_validate(route)


# ── 12. POST /economics/v2/scenarios/{scenario_id}/other-costs ──────────────


@router.post(
    "/v2/scenarios/{scenario_id}/other-costs",
    response_model=OtherCostResponse,
    status_code=201,
)
async def add_other_cost(
    scenario_id: int,
    body: OtherCostCreate,
    db: AsyncSession = Depends(get_db),
) -> OtherCostResponse:
    cost = await ScenarioService(db).add_other_cost(scenario_id, body)
    return OtherCostResponse.model_validate(cost)


# ── 13. POST /economics/v2/scenarios/{scenario_id}/recalculate ──────────────


@router.post("/v2/scenarios/{scenario_id}/recalculate", response_model=RecalculationResponse)
async def recalculate_scenario(
    scenario_id: int,
    db: AsyncSession = Depends(get_db),
    rate_source: FxRateService = Depends(_get_rate_source),
) -> RecalculationResponse:
    """Recompute scenario totals from its selected group routes."""
    recalculator = ScenarioRecalculator(db, CurrencyConverter(rate_source))
    scenario, totals = await recalculator.recalculate(scenario_id)
    return RecalculationResponse(
        scenario=EconScenarioResponse.model_validate(scenario),
        route_errors=totals.route_errors,
        warnings=[ConversionWarningResponse.model_validate(w) for w in totals.warnings],
    )


# ── 14. POST /economics/route-pricing/preview ───────────────────────────────


@router.post("/route-pricing/preview", response_model=RoutePricingPreviewResponse)
async def preview_route_pricing(body: RoutePricingPreviewRequest) -> RoutePricingPreviewResponse:
    """Price a tariff without persisting anything."""
    measures = chargeable_measures(
        body.pricing_model,
        body.weight_kg,
        body.volume_cbm,
        round_step_kg=body.round_step_kg,
        round_step_cbm=body.round_step_cbm,
        volumetric_kg_per_cbm=body.volumetric_kg_per_cbm,
    )
    priced = calc_route_amount(
        body.pricing_model,
        fixed_cost=body.fixed_cost,
        rate_per_kg=body.rate_per_kg,
        rate_per_cbm=body.rate_per_cbm,
        min_cost=body.min_cost,
        markup_pct=body.markup_pct,
        markup_fixed=body.markup_fixed,
        weight_kg=measures.weight_kg,
        volume_cbm=measures.volume_cbm,
    )
    return RoutePricingPreviewResponse(
        ok=priced.ok,
        status=priced.status,
        message=priced.message,
        amount=priced.amount,
        chargeable_weight_kg=measures.weight_kg,
        chargeable_volume_cbm=measures.volume_cbm,
    )
