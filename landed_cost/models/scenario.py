"""Priced scenarios built from a candidate set and its shipment-group routes."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin
from landed_cost.models.enums import (
    CalcStatus,
    PricingModel,
    RouteSourceType,
    ScenarioStatus,
    ScenarioStrategy,
    enum_column_type,
)


class EconScenario(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "econ_scenarios"

    rfq_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    candidate_set_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("candidate_sets.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_type: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default="auto_from_coverage"
    )
    strategy: Mapped[ScenarioStrategy] = mapped_column(
        enum_column_type(ScenarioStrategy), nullable=False, server_default="MANUAL"
    )
    calc_currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    status: Mapped[ScenarioStatus] = mapped_column(
        enum_column_type(ScenarioStatus), nullable=False, server_default="draft"
    )
    goods_total: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    logistics_total: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    duty_total: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    other_total: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    landed_total: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    eta_best_days: Mapped[int | None] = mapped_column(Integer)
    eta_worst_days: Mapped[int | None] = mapped_column(Integer)
    coverage_progress_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    priced_progress_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    oem_ok: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    warning_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    __table_args__ = (
        Index("ix_econ_scenarios_rfq_candidate", "rfq_id", "candidate_set_id"),
    )


class ScenarioGroupRoute(IdPrimaryKeyMixin, TimestampMixin, Base):
    """Pricing assignment for one shipment group inside one scenario."""

    __tablename__ = "scenario_group_routes"

    scenario_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("econ_scenarios.id", ondelete="CASCADE"), nullable=False
    )
    shipment_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("shipment_groups.id", ondelete="CASCADE"), nullable=False
    )
    route_source_type: Mapped[RouteSourceType] = mapped_column(
        enum_column_type(RouteSourceType), nullable=False, server_default="template"
    )
    route_template_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("route_templates.id", ondelete="SET NULL")
    )
    pricing_model: Mapped[PricingModel | None] = mapped_column(enum_column_type(PricingModel))
    currency: Mapped[str | None] = mapped_column(String(3))
    fixed_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    rate_per_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    rate_per_cbm: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    min_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    markup_pct: Mapped[Decimal | None] = mapped_column(Numeric(9, 4))
    markup_fixed: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    volume_cbm: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))
    logistics_amount_calc: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    eta_min_days_calc: Mapped[int | None] = mapped_column(Integer)
    eta_max_days_calc: Mapped[int | None] = mapped_column(Integer)
    duty_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    duty_currency: Mapped[str | None] = mapped_column(String(3))
    calc_status: Mapped[CalcStatus] = mapped_column(
        enum_column_type(CalcStatus), nullable=False, server_default="draft"
    )
    calc_message: Mapped[str | None] = mapped_column(Text)
    selected_for_scenario: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="true"
    )

    __table_args__ = (
        Index("ix_scenario_group_routes_scenario_id", "scenario_id"),
        Index("ix_scenario_group_routes_group_id", "shipment_group_id"),
    )


class ScenarioOtherCost(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "scenario_other_costs"

    scenario_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("econ_scenarios.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    currency: Mapped[str | None] = mapped_column(String(3))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, server_default="1")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    __table_args__ = (Index("ix_scenario_other_costs_scenario_id", "scenario_id"),)
