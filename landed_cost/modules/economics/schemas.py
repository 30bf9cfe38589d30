"""Pydantic v2 schemas for the economics module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from landed_cost.models.enums import (
    CalcStatus,
    CandidateSetStatus,
    ConsolidationPotential,
    DataReadiness,
    PricingModel,
    RouteSourceType,
    ScenarioStatus,
    ScenarioStrategy,
    ShipmentGroupStatus,
)

# ── Request schemas ──────────────────────────────────────────────────────────


class AutoScenarioRequest(BaseModel):
    """Request to snapshot the cheapest option per line as an auto scenario."""

    name: str | None = Field(default=None, max_length=255)
    strategy: str | None = Field(default=None, max_length=64)


class CandidateImportRequest(BaseModel):
    """Scored supplier combinations for one RFQ line.

    Each combination is kept verbatim as the candidate set's payload snapshot.
    """

    rfq_item_id: int = Field(..., gt=0)
    combos: list[dict[str, Any]] = Field(..., min_length=1)


class AutoGroupRequest(BaseModel):
    candidate_set_id: int = Field(..., gt=0)
    to_country: str | None = Field(default=None, max_length=64)
    replace_existing: bool = True
    strategy: str = "standard"


class GroupMeasuresUpdate(BaseModel):
    total_weight_kg: Decimal | None = Field(default=None, ge=0)
    total_volume_cbm: Decimal | None = Field(default=None, ge=0)


class DraftScenarioRequest(BaseModel):
    candidate_set_id: int = Field(..., gt=0)
    name: str | None = Field(default=None, max_length=255)
    strategy: str | None = None
    calc_currency: str | None = None


class GroupRouteAssign(BaseModel):
    """Assign a route template or an ad-hoc tariff to a scenario's shipment group.

    Measures left empty fall back to the group's own weight and volume.
    """

    route_source_type: RouteSourceType = RouteSourceType.TEMPLATE
    route_template_id: int | None = Field(default=None, gt=0)
    pricing_model: PricingModel | None = None
    currency: str | None = None
    fixed_cost: Decimal | None = None
    rate_per_kg: Decimal | None = None
    rate_per_cbm: Decimal | None = None
    min_cost: Decimal | None = None
    markup_pct: Decimal | None = None
    markup_fixed: Decimal | None = None
    weight_kg: Decimal | None = Field(default=None, ge=0)
    volume_cbm: Decimal | None = Field(default=None, ge=0)
    eta_min_days: int | None = Field(default=None, ge=0)
    eta_max_days: int | None = Field(default=None, ge=0)
    duty_amount: Decimal | None = None
    duty_currency: str | None = None
    selected_for_scenario: bool = True

    @model_validator(mode="after")
    def validate_source(self) -> GroupRouteAssign:
        if self.route_source_type == RouteSourceType.TEMPLATE and self.route_template_id is None:
            raise ValueError("route_template_id is required for template routes")
        if self.route_source_type == RouteSourceType.ADHOC and self.pricing_model is None:
            raise ValueError("pricing_model is required for ad-hoc routes")
        return self


class OtherCostCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal | None = None
    currency: str | None = None
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    enabled: bool = True


class RoutePricingPreviewRequest(BaseModel):
    pricing_model: str
    fixed_cost: Decimal | None = None
    rate_per_kg: Decimal | None = None
    rate_per_cbm: Decimal | None = None
    min_cost: Decimal | None = None
    markup_pct: Decimal | None = None
    markup_fixed: Decimal | None = None
    weight_kg: Decimal | None = None
    volume_cbm: Decimal | None = None
    round_step_kg: Decimal | None = None
    round_step_cbm: Decimal | None = None
    volumetric_kg_per_cbm: Decimal | None = None


# ── Response schemas ─────────────────────────────────────────────────────────


class LineOptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row_key: str
    rfq_item_id: int | None
    response_line_id: int | None
    rfq_supplier_id: int | None
    supplier_id: int | None
    route_id: int | None
    line_number: int | None
    selection_key_norm: str
    selection_key_raw: str
    supplier_name: str
    route_name: str
    part_number: str
    part_description: str
    goods_amount: Decimal | None
    goods_currency: str | None
    logistics_amount: Decimal | None
    logistics_currency: str | None
    duty_amount: Decimal | None
    landed_amount: Decimal | None
    landed_currency: str | None
    eta_total_days: Decimal | None
    supplier_score: Decimal | None
    fx_missing: bool
    landed_currency_inferred: bool


class SupplierSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    supplier_name: str
    route_name: str
    lines_count: int
    goods_total: Decimal | None
    logistics_total: Decimal | None
    duty_total: Decimal | None
    landed_total: Decimal | None
    lines_with_currency_gap: int
    calc_currency: str | None
    eta_days_worst: Decimal | None
    eta_days_avg: Decimal | None
    avg_supplier_score: Decimal | None


class AutoScenarioSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scenario_id: int
    name: str
    strategy: str
    created_at: datetime | None
    picked_lines: int
    goods_total: Decimal | None
    logistics_total: Decimal | None
    duty_total: Decimal | None
    landed_total: Decimal | None
    currency_hint: str | None
    eta_days_worst: Decimal | None
    eta_days_avg: Decimal | None
    avg_supplier_score: Decimal | None


class AutoScenarioLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scenario_id: int
    rfq_item_id: int | None
    response_line_id: int | None
    selection_key_norm: str | None
    rfq_supplier_id: int | None
    supplier_id: int | None
    route_id: int | None
    goods_amount: Decimal | None
    logistics_amount: Decimal | None
    duty_amount: Decimal | None
    landed_amount: Decimal | None
    landed_currency: str | None
    eta_total_days: Decimal | None
    supplier_score: Decimal | None


class DashboardSource(BaseModel):
    line_view: str | None
    supplier_view: str | None


class DashboardResponse(BaseModel):
    rfq_id: int
    target_currency: str | None
    source: DashboardSource
    suppliers: list[SupplierSummaryResponse]
    lines: list[LineOptionResponse]
    scenarios: list[AutoScenarioSummaryResponse]
    latest_scenario_id: int | None
    latest_scenario_name: str | None
    latest_scenario_lines: list[AutoScenarioLineResponse]


class AutoScenarioResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scenario_id: int
    name: str
    strategy: str
    picked_lines: int


class CandidateSetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rfq_id: int
    rfq_item_id: int
    source_type: str
    source_ref: str | None
    name: str
    combo_hash: str | None
    progress_structure_pct: Decimal
    progress_priced_pct: Decimal
    oem_ok: bool
    supplier_count: int
    country_count: int
    consolidation_potential: ConsolidationPotential
    score_total: Decimal | None
    status: CandidateSetStatus
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CandidateListResponse(BaseModel):
    rfq_id: int
    rfq_item_id: int | None
    count: int
    rows: list[CandidateSetResponse]


class ImportedCandidateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_set_id: int
    combo_key: str | None
    name: str


class CandidateImportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    imported_count: int
    inserted_count: int
    updated_count: int
    rows: list[ImportedCandidateResponse]


class ShipmentGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rfq_id: int
    candidate_set_id: int
    name: str
    code: str
    sort_order: int
    from_country: str
    to_country: str | None
    consolidation_key: str
    urgency_bucket: str
    status: ShipmentGroupStatus
    data_readiness: DataReadiness
    total_items_count: int
    total_suppliers_count: int
    total_weight_kg: Decimal | None
    total_volume_cbm: Decimal | None


class ShipmentGroupListResponse(BaseModel):
    rfq_id: int
    candidate_set_id: int | None
    count: int
    rows: list[ShipmentGroupResponse]


class AutoGroupResponse(BaseModel):
    rfq_id: int
    candidate_set_id: int
    created_count: int
    rows: list[ShipmentGroupResponse]


class EconScenarioResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rfq_id: int
    candidate_set_id: int | None
    name: str
    source_type: str
    strategy: ScenarioStrategy
    calc_currency: str
    status: ScenarioStatus
    goods_total: Decimal | None
    logistics_total: Decimal | None
    duty_total: Decimal | None
    other_total: Decimal | None
    landed_total: Decimal | None
    eta_best_days: int | None
    eta_worst_days: int | None
    coverage_progress_pct: Decimal
    priced_progress_pct: Decimal
    oem_ok: bool
    warning_count: int


class ScenarioListResponse(BaseModel):
    rfq_id: int
    candidate_set_id: int | None
    count: int
    rows: list[EconScenarioResponse]


class DraftScenarioResponse(BaseModel):
    scenario: EconScenarioResponse
    groups_attached: int


class GroupRouteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scenario_id: int
    shipment_group_id: int
    route_source_type: RouteSourceType
    route_template_id: int | None
    pricing_model: PricingModel | None
    currency: str | None
    fixed_cost: Decimal | None
    rate_per_kg: Decimal | None
    rate_per_cbm: Decimal | None
    min_cost: Decimal | None
    markup_pct: Decimal | None
    markup_fixed: Decimal | None
    weight_kg: Decimal | None
    volume_cbm: Decimal | None
    logistics_amount_calc: Decimal | None
    eta_min_days_calc: int | None
    eta_max_days_calc: int | None
    duty_amount: Decimal | None
    duty_currency: str | None
    calc_status: CalcStatus
    calc_message: str | None
    selected_for_scenario: bool


class OtherCostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scenario_id: int
    name: str
    amount: Decimal | None
    currency: str | None
    quantity: Decimal
    enabled: bool


class ConversionWarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source: str
    ref_id: int
    reason: str


class RecalculationResponse(BaseModel):
    scenario: EconScenarioResponse
    route_errors: int
    warnings: list[ConversionWarningResponse]


class RoutePricingPreviewResponse(BaseModel):
    ok: bool
    status: CalcStatus
    message: str | None
    amount: Decimal | None
    chargeable_weight_kg: Decimal | None
    chargeable_volume_cbm: Decimal | None
