"""FX rate snapshots persisted by the rate service."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin


class FxRate(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "fx_rates"

    base_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    quote_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(20, 10), nullable=False)
    as_of: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("base_currency", "quote_currency", name="uq_fx_rates_pair"),
        Index("ix_fx_rates_pair_as_of", "base_currency", "quote_currency", "as_of"),
    )


class RfqEconSettings(IdPrimaryKeyMixin, TimestampMixin, Base):
    """Per-RFQ economics preferences (target currency)."""

    __tablename__ = "rfq_econ_settings"

    rfq_id: Mapped[int] = mapped_column(nullable=False, unique=True)
    target_currency: Mapped[str | None] = mapped_column(String(3))
