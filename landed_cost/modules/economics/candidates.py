"""Candidate set import — scored supplier combinations become candidate sets, slots and items."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import case, delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.session import atomic
from landed_cost.exceptions import NotFoundException
from landed_cost.models.candidate_set import CandidateItem, CandidateSet, CandidateSlot, CandidateSupplier
from landed_cost.models.enums import CandidateItemStatus, CandidateSetStatus
from landed_cost.modules.economics.classification import (
    parse_combo_status,
    parse_consolidation_potential,
    parse_slot_status,
)
from landed_cost.modules.economics.constants import (
    COMBO_NAME_TEMPLATE,
    SLOT_KEY_TEMPLATE,
    SLOT_NAME_TEMPLATE,
)
from landed_cost.modules.economics.normalizer import (
    to_country_code,
    to_currency_code,
    to_decimal_or_null,
    to_positive_integer,
    to_trimmed_string_or_null,
)

logger = logging.getLogger(__name__)

SOURCE_TYPE_COVERAGE = "COVERAGE"
ATOM_KIND_MANUAL = "manual"

_STATUS_ORDER = [
    CandidateSetStatus.SELECTED_FOR_ECONOMICS,
    CandidateSetStatus.CANDIDATE,
    CandidateSetStatus.DRAFT,
    CandidateSetStatus.ARCHIVED,
]


@dataclass
class ImportedCandidate:
    candidate_set_id: int
    combo_key: str | None
    name: str


@dataclass
class ImportResult:
    inserted_count: int = 0
    updated_count: int = 0
    rows: list[ImportedCandidate] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.rows)


def combo_key_fallback(supplier_ids: list[int]) -> str | None:
    """Content key for a combination without an explicit one: sorted supplier ids joined by '+'."""
    if not supplier_ids:
        return None
    return "+".join(str(i) for i in sorted(supplier_ids))


def count_countries(combo: dict[str, Any]) -> int:
    explicit = to_positive_integer(combo.get("countries_count"))
    if explicit:
        return explicit
    countries = combo.get("countries")
    if not isinstance(countries, list):
        return 0
    return len({str(c).strip() for c in countries if c and str(c).strip()})


def item_has_price(price: Decimal | None, currency: str | None) -> bool:
    return price is not None and bool(currency)


def _list(value: object) -> list:
    return value if isinstance(value, list) else []


class CandidateImportService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def import_combinations(
        self,
        rfq_id: int,
        rfq_item_id: int,
        combos: list[dict[str, Any]],
    ) -> ImportResult:
        """Upsert each combination by ``(rfq_id, rfq_item_id, combo_hash)``.

        A matched active candidate set is updated in place and its suppliers,
        slots and items are replaced wholesale. The whole batch is one
        transaction.
        """
        result = ImportResult()
        async with atomic(self.db):
            await self._ensure_rfq_item(rfq_id, rfq_item_id)
            for combo in combos:
                combo = combo if isinstance(combo, dict) else {}
                candidate, created = await self._upsert_candidate_set(rfq_id, rfq_item_id, combo)
                if created:
                    result.inserted_count += 1
                else:
                    result.updated_count += 1
                    await self._delete_children(candidate.id)
                self._add_children(candidate.id, rfq_item_id, combo)
                result.rows.append(
                    ImportedCandidate(
                        candidate_set_id=candidate.id,
                        combo_key=to_trimmed_string_or_null(combo.get("key")),
                        name=candidate.name,
                    )
                )
            await self.db.flush()

        logger.info(
            "Imported %d combinations for RFQ %s item %s (%d inserted, %d updated)",
            result.imported_count,
            rfq_id,
            rfq_item_id,
            result.inserted_count,
            result.updated_count,
        )
        return result

    async def _ensure_rfq_item(self, rfq_id: int, rfq_item_id: int) -> None:
        found = await self.db.execute(
            text("SELECT id FROM rfq_items WHERE id = :item_id AND rfq_id = :rfq_id LIMIT 1"),
            {"item_id": rfq_item_id, "rfq_id": rfq_id},
        )
        if found.first() is None:
            raise NotFoundException(f"RFQ item {rfq_item_id} not found in RFQ {rfq_id}")

    async def _upsert_candidate_set(
        self,
        rfq_id: int,
        rfq_item_id: int,
        combo: dict[str, Any],
    ) -> tuple[CandidateSet, bool]:
        supplier_ids = [i for i in (to_positive_integer(v) for v in _list(combo.get("supplier_ids"))) if i]
        combo_hash = to_trimmed_string_or_null(combo.get("key")) or combo_key_fallback(supplier_ids)
        values = {
            "source_type": SOURCE_TYPE_COVERAGE,
            "source_ref": to_trimmed_string_or_null(combo.get("key")),
            "name": to_trimmed_string_or_null(combo.get("supplier_names"))
            or COMBO_NAME_TEMPLATE.format(ids="+".join(str(i) for i in supplier_ids) or "manual"),
            "progress_structure_pct": to_decimal_or_null(combo.get("structure_coverage_pct")) or Decimal(0),
            "progress_priced_pct": to_decimal_or_null(combo.get("priced_coverage_pct")) or Decimal(0),
            "oem_ok": bool(combo.get("oem_ok")),
            "supplier_count": len(supplier_ids),
            "country_count": count_countries(combo),
            "consolidation_potential": parse_consolidation_potential(combo.get("consolidation_hint")),
            "score_total": to_decimal_or_null(combo.get("score")),
            "status": parse_combo_status(combo.get("status")),
            "payload_json": combo,
        }

        existing = None
        if combo_hash:
            found = await self.db.execute(
                select(CandidateSet)
                .where(
                    CandidateSet.rfq_id == rfq_id,
                    CandidateSet.rfq_item_id == rfq_item_id,
                    CandidateSet.combo_hash == combo_hash,
                    CandidateSet.is_active.is_(True),
                )
                .order_by(CandidateSet.id.desc())
                .limit(1)
            )
            existing = found.scalar_one_or_none()

        if existing is not None:
            for key, value in values.items():
                setattr(existing, key, value)
            return existing, False

        candidate = CandidateSet(
            rfq_id=rfq_id,
            rfq_item_id=rfq_item_id,
            combo_hash=combo_hash,
            is_active=True,
            **values,
        )
        self.db.add(candidate)
        await self.db.flush()
        return candidate, True

    async def _delete_children(self, candidate_set_id: int) -> None:
        for model in (CandidateSupplier, CandidateSlot, CandidateItem):
            await self.db.execute(delete(model).where(model.candidate_set_id == candidate_set_id))

    def _add_children(self, candidate_set_id: int, rfq_item_id: int, combo: dict[str, Any]) -> None:
        supplier_ids = [i for i in (to_positive_integer(v) for v in _list(combo.get("supplier_ids"))) if i]
        countries = _list(combo.get("countries"))
        full_name = to_trimmed_string_or_null(combo.get("supplier_names"))
        country_by_supplier: dict[int, str | None] = {}

        for idx, supplier_id in enumerate(supplier_ids):
            country = to_country_code(countries[idx]) if idx < len(countries) else None
            country_by_supplier.setdefault(supplier_id, country)
            self.db.add(
                CandidateSupplier(
                    candidate_set_id=candidate_set_id,
                    supplier_id=supplier_id,
                    supplier_name_snapshot=full_name if len(supplier_ids) == 1 else None,
                    supplier_country_snapshot=country,
                    sort_order=idx,
                )
            )

        for idx, slot in enumerate(_list(combo.get("assignment_preview"))):
            slot = slot if isinstance(slot, dict) else {}
            slot_key = to_trimmed_string_or_null(slot.get("element_key")) or SLOT_KEY_TEMPLATE.format(n=idx + 1)
            slot_name = to_trimmed_string_or_null(slot.get("element_label")) or SLOT_NAME_TEMPLATE.format(n=idx + 1)
            variant_name = to_trimmed_string_or_null(slot.get("variant_label"))
            variant_key = to_trimmed_string_or_null(slot.get("variant_key")) or variant_name

            self.db.add(
                CandidateSlot(
                    candidate_set_id=candidate_set_id,
                    slot_key=slot_key,
                    slot_name=slot_name,
                    chosen_variant_key=variant_key,
                    chosen_variant_name=variant_name,
                    variant_progress_pct=to_decimal_or_null(slot.get("progress_pct")) or Decimal(0),
                    variant_priced_progress_pct=to_decimal_or_null(slot.get("priced_progress_pct"))
                    or Decimal(0),
                    is_oem_critical=bool(slot.get("is_oem_required")),
                    oem_ok=bool(slot.get("oem_ok")),
                    status=parse_slot_status(slot.get("status")),
                    payload_json=slot,
                )
            )

            chosen_supplier_id = to_positive_integer(slot.get("chosen_supplier_id"))
            if not chosen_supplier_id:
                continue
            price = to_decimal_or_null(slot.get("price"))
            currency = to_currency_code(slot.get("currency"))
            priced = item_has_price(price, currency)
            self.db.add(
                CandidateItem(
                    candidate_set_id=candidate_set_id,
                    rfq_item_id=rfq_item_id,
                    slot_key=slot_key,
                    slot_name=slot_name,
                    variant_key=variant_key or slot_key,
                    variant_name=variant_name,
                    atom_key=f"{slot_key}:{chosen_supplier_id}",
                    atom_kind=ATOM_KIND_MANUAL,
                    atom_name=slot_name,
                    supplier_id=chosen_supplier_id,
                    supplier_name_snapshot=to_trimmed_string_or_null(slot.get("chosen_supplier_name")),
                    supplier_country_snapshot=country_by_supplier.get(chosen_supplier_id),
                    qty=to_decimal_or_null(slot.get("qty")),
                    goods_amount=price,
                    goods_currency=currency,
                    lead_time_days=to_positive_integer(slot.get("lead_time_days")),
                    moq=to_decimal_or_null(slot.get("moq")),
                    lot_size=to_decimal_or_null(slot.get("lot_size")),
                    packaging=to_trimmed_string_or_null(slot.get("packaging")),
                    has_price=priced,
                    is_oem_offer=bool(slot.get("is_oem_offer")),
                    status=CandidateItemStatus.CANDIDATE if priced else CandidateItemStatus.NO_PRICE,
                    payload_json=slot,
                )
            )

    async def list_candidate_sets(self, rfq_id: int, rfq_item_id: int | None = None) -> list[CandidateSet]:
        """Active first, then by status rank, score desc (nulls last), newest first."""
        status_rank = case(
            {status.value: rank for rank, status in enumerate(_STATUS_ORDER)},
            value=CandidateSet.status,
            else_=len(_STATUS_ORDER),
        )
        query = select(CandidateSet).where(CandidateSet.rfq_id == rfq_id)
        if rfq_item_id:
            query = query.where(CandidateSet.rfq_item_id == rfq_item_id)
        query = query.order_by(
            CandidateSet.is_active.desc(),
            status_rank,
            CandidateSet.score_total.desc().nulls_last(),
            CandidateSet.id.desc(),
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_candidate_set(self, rfq_id: int, candidate_set_id: int) -> CandidateSet:
        result = await self.db.execute(
            select(CandidateSet).where(
                CandidateSet.id == candidate_set_id,
                CandidateSet.rfq_id == rfq_id,
                CandidateSet.is_active.is_(True),
            )
        )
        candidate = result.scalar_one_or_none()
        if candidate is None:
            raise NotFoundException(f"Candidate set {candidate_set_id} not found for RFQ {rfq_id}")
        return candidate
