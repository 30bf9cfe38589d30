"""Logistics corridors and route templates — reference data read by route pricing."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin
from landed_cost.models.enums import PricingModel, enum_column_type


class LogisticsCorridor(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "logistics_corridors"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    from_country: Mapped[str | None] = mapped_column(String(2))
    to_country: Mapped[str | None] = mapped_column(String(2))
    transport_mode: Mapped[str | None] = mapped_column(String(32))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")


class RouteTemplate(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "route_templates"

    corridor_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("logistics_corridors.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    transport_mode: Mapped[str | None] = mapped_column(String(32))
    from_country: Mapped[str | None] = mapped_column(String(2))
    to_country: Mapped[str | None] = mapped_column(String(2))
    pricing_model: Mapped[PricingModel] = mapped_column(
        enum_column_type(PricingModel), nullable=False, server_default="fixed"
    )
    currency: Mapped[str | None] = mapped_column(String(3))
    fixed_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    rate_per_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    rate_per_cbm: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    min_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    markup_pct: Mapped[Decimal | None] = mapped_column(Numeric(9, 4))
    markup_fixed: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    volumetric_kg_per_cbm: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    round_step_kg: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    round_step_cbm: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    eta_min_days: Mapped[int | None] = mapped_column()
    eta_max_days: Mapped[int | None] = mapped_column()
    comment: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    __table_args__ = (
        Index("ix_route_templates_corridor_id", "corridor_id"),
        Index("ix_route_templates_countries", "from_country", "to_country"),
    )
