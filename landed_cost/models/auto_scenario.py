"""Legacy single-currency scenarios produced by the min-landed selector."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin


class AutoScenario(IdPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "auto_scenarios"

    rfq_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    strategy: Mapped[str] = mapped_column(String(64), nullable=False, server_default="MIN_LANDED")

    __table_args__ = (Index("ix_auto_scenarios_rfq_id", "rfq_id"),)


class AutoScenarioLine(IdPrimaryKeyMixin, TimestampMixin, Base):
    """Immutable snapshot of one winning line option."""

    __tablename__ = "auto_scenario_lines"

    scenario_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("auto_scenarios.id", ondelete="CASCADE"), nullable=False
    )
    rfq_item_id: Mapped[int | None] = mapped_column(BigInteger)
    response_line_id: Mapped[int | None] = mapped_column(BigInteger)
    selection_key_norm: Mapped[str | None] = mapped_column(String(255))
    rfq_supplier_id: Mapped[int | None] = mapped_column(BigInteger)
    supplier_id: Mapped[int | None] = mapped_column(BigInteger)
    route_id: Mapped[int | None] = mapped_column(BigInteger)
    goods_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    logistics_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    duty_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    landed_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    landed_currency: Mapped[str | None] = mapped_column(String(3))
    eta_total_days: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    supplier_score: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))

    __table_args__ = (Index("ix_auto_scenario_lines_scenario_id", "scenario_id"),)
