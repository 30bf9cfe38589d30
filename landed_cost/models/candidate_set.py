"""Candidate sets imported from scored supplier combinations, and their children."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin
from landed_cost.models.enums import (
    CandidateItemStatus,
    CandidateSetStatus,
    ConsolidationPotential,
    SlotStatus,
    enum_column_type,
)


class CandidateSet(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "candidate_sets"

    rfq_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    rfq_item_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    source_type: Mapped[str] = mapped_column(String(32), nullable=False, server_default="COVERAGE")
    source_ref: Mapped[str | None] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    combo_hash: Mapped[str | None] = mapped_column(String(255))
    progress_structure_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    progress_priced_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    oem_ok: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    supplier_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    country_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    consolidation_potential: Mapped[ConsolidationPotential] = mapped_column(
        enum_column_type(ConsolidationPotential), nullable=False, server_default="unknown"
    )
    score_total: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    status: Mapped[CandidateSetStatus] = mapped_column(
        enum_column_type(CandidateSetStatus), nullable=False, server_default="draft"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    payload_json: Mapped[dict | list | None] = mapped_column(JSONB)

    __table_args__ = (
        Index("ix_candidate_sets_rfq_item", "rfq_id", "rfq_item_id"),
        Index("ix_candidate_sets_combo_hash", "rfq_id", "rfq_item_id", "combo_hash"),
    )


class CandidateSupplier(IdPrimaryKeyMixin, Base):
    __tablename__ = "candidate_suppliers"

    candidate_set_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_sets.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    supplier_name_snapshot: Mapped[str | None] = mapped_column(String(255))
    supplier_country_snapshot: Mapped[str | None] = mapped_column(String(2))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    __table_args__ = (Index("ix_candidate_suppliers_set_id", "candidate_set_id"),)


class CandidateSlot(IdPrimaryKeyMixin, Base):
    """One demand position (e.g. a BOM element) and the variant chosen for it."""

    __tablename__ = "candidate_slots"

    candidate_set_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_sets.id", ondelete="CASCADE"), nullable=False
    )
    slot_key: Mapped[str] = mapped_column(String(255), nullable=False)
    slot_name: Mapped[str] = mapped_column(String(255), nullable=False)
    chosen_variant_key: Mapped[str | None] = mapped_column(String(255))
    chosen_variant_name: Mapped[str | None] = mapped_column(String(255))
    variant_progress_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    variant_priced_progress_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, server_default="0"
    )
    is_oem_critical: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    oem_ok: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    status: Mapped[SlotStatus] = mapped_column(
        enum_column_type(SlotStatus), nullable=False, server_default="empty"
    )
    payload_json: Mapped[dict | None] = mapped_column(JSONB)

    __table_args__ = (Index("ix_candidate_slots_set_id", "candidate_set_id"),)


class CandidateItem(IdPrimaryKeyMixin, Base):
    """A priced atomic offer attached to a slot and a supplier."""

    __tablename__ = "candidate_items"

    candidate_set_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_sets.id", ondelete="CASCADE"), nullable=False
    )
    rfq_item_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    slot_key: Mapped[str] = mapped_column(String(255), nullable=False)
    slot_name: Mapped[str | None] = mapped_column(String(255))
    variant_key: Mapped[str | None] = mapped_column(String(255))
    variant_name: Mapped[str | None] = mapped_column(String(255))
    atom_key: Mapped[str] = mapped_column(String(255), nullable=False)
    atom_kind: Mapped[str] = mapped_column(String(32), nullable=False, server_default="manual")
    atom_name: Mapped[str | None] = mapped_column(String(255))
    supplier_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    supplier_name_snapshot: Mapped[str | None] = mapped_column(String(255))
    supplier_country_snapshot: Mapped[str | None] = mapped_column(String(2))
    qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    goods_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    goods_currency: Mapped[str | None] = mapped_column(String(3))
    lead_time_days: Mapped[int | None] = mapped_column(Integer)
    moq: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    lot_size: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    packaging: Mapped[str | None] = mapped_column(String(255))
    has_price: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    is_oem_offer: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    status: Mapped[CandidateItemStatus] = mapped_column(
        enum_column_type(CandidateItemStatus), nullable=False, server_default="no_price"
    )
    payload_json: Mapped[dict | None] = mapped_column(JSONB)

    __table_args__ = (
        Index("ix_candidate_items_set_id", "candidate_set_id"),
        Index("ix_candidate_items_supplier_id", "supplier_id"),
    )
