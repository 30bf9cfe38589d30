"""Shipment groups — candidate items consolidated by origin for joint logistics pricing."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin
from landed_cost.models.enums import DataReadiness, ShipmentGroupStatus, enum_column_type


class ShipmentGroup(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "shipment_groups"

    rfq_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    candidate_set_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_sets.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    from_country: Mapped[str] = mapped_column(String(2), nullable=False, server_default="UN")
    to_country: Mapped[str | None] = mapped_column(String(2))
    consolidation_key: Mapped[str] = mapped_column(String(64), nullable=False)
    urgency_bucket: Mapped[str] = mapped_column(String(32), nullable=False, server_default="standard")
    status: Mapped[ShipmentGroupStatus] = mapped_column(
        enum_column_type(ShipmentGroupStatus), nullable=False, server_default="draft"
    )
    data_readiness: Mapped[DataReadiness] = mapped_column(
        enum_column_type(DataReadiness), nullable=False, server_default="unknown"
    )
    total_items_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_suppliers_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    total_volume_cbm: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))

    __table_args__ = (
        Index("ix_shipment_groups_rfq_candidate", "rfq_id", "candidate_set_id"),
    )


class ShipmentGroupItem(IdPrimaryKeyMixin, Base):
    __tablename__ = "shipment_group_items"

    shipment_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("shipment_groups.id", ondelete="CASCADE"), nullable=False
    )
    candidate_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_items.id", ondelete="CASCADE"), nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    included: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    qty_override: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))

    __table_args__ = (
        Index("ix_shipment_group_items_group_id", "shipment_group_id"),
        Index("ix_shipment_group_items_candidate_item_id", "candidate_item_id"),
    )
