"""Tests for CandidateImportService — upsert by combination key and child replacement."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from landed_cost.exceptions import NotFoundException
from landed_cost.models.candidate_set import CandidateItem, CandidateSet, CandidateSlot, CandidateSupplier
from landed_cost.models.enums import (
    CandidateItemStatus,
    CandidateSetStatus,
    ConsolidationPotential,
    SlotStatus,
)
from landed_cost.modules.economics.candidates import (
    CandidateImportService,
    combo_key_fallback,
    count_countries,
    item_has_price,
)


def _combo(**overrides) -> dict:
    combo = {
        "key": "17+42",
        "supplier_ids": [17, 42],
        "supplier_names": "Acme + Borg",
        "countries": ["cn", "DE"],
        "structure_coverage_pct": "100",
        "priced_coverage_pct": "50",
        "oem_ok": True,
        "consolidation_hint": "Высокий",
        "score": "87.5",
        "status": "Кандидат",
        "assignment_preview": [
            {
                "element_key": "pump",
                "element_label": "Pump",
                "variant_label": "OEM",
                "status": "Q+P",
                "chosen_supplier_id": 42,
                "chosen_supplier_name": "Borg",
                "price": "1200,50",
                "currency": "eur",
                "qty": "2",
            },
            {
                "element_label": "Seal kit",
                "status": "Q?",
                "chosen_supplier_id": 17,
            },
            {"status": "NQ"},
        ],
    }
    combo.update(overrides)
    return combo


def _result(first=None, scalar=None) -> MagicMock:
    result = MagicMock()
    result.first.return_value = first
    result.scalar_one_or_none.return_value = scalar
    return result


def _mock_db(*results) -> MagicMock:
    db = MagicMock()
    savepoint = MagicMock()
    savepoint.commit = AsyncMock()
    savepoint.rollback = AsyncMock()
    db.begin_nested = AsyncMock(return_value=savepoint)
    db.execute = AsyncMock(side_effect=list(results))
    db.flush = AsyncMock()
    added: list = []
    db.add.side_effect = added.append
    db.added = added
    return db


def _of_type(objects: list, cls: type) -> list:
    return [o for o in objects if isinstance(o, cls)]


class TestHelpers:
    def test_combo_key_fallback_sorts_ids(self) -> None:
        assert combo_key_fallback([42, 17]) == "17+42"
        assert combo_key_fallback([]) is None

    def test_count_countries(self) -> None:
        assert count_countries({"countries": ["CN", "cn ", "DE", "", None]}) == 3
        assert count_countries({"countries_count": 4, "countries": ["CN"]}) == 4
        assert count_countries({}) == 0

    def test_item_has_price(self) -> None:
        assert item_has_price(Decimal("1"), "USD") is True
        assert item_has_price(Decimal("0"), "USD") is True
        assert item_has_price(None, "USD") is False
        assert item_has_price(Decimal("1"), None) is False


class TestImportCombinations:
    @pytest.mark.asyncio
    async def test_inserts_new_candidate_set(self) -> None:
        db = _mock_db(_result(first=(5,)), _result(scalar=None))
        service = CandidateImportService(db)

        result = await service.import_combinations(1, 5, [_combo()])

        assert result.inserted_count == 1
        assert result.updated_count == 0
        assert result.imported_count == 1
        assert result.rows[0].combo_key == "17+42"

        (candidate,) = _of_type(db.added, CandidateSet)
        assert candidate.combo_hash == "17+42"
        assert candidate.name == "Acme + Borg"
        assert candidate.supplier_count == 2
        assert candidate.country_count == 2
        assert candidate.status == CandidateSetStatus.CANDIDATE
        assert candidate.consolidation_potential == ConsolidationPotential.HIGH
        assert candidate.progress_priced_pct == Decimal("50")

        suppliers = _of_type(db.added, CandidateSupplier)
        assert [s.supplier_country_snapshot for s in suppliers] == ["CN", "DE"]

        slots = _of_type(db.added, CandidateSlot)
        assert [s.slot_key for s in slots] == ["pump", "slot_2", "slot_3"]
        assert [s.status for s in slots] == [
            SlotStatus.COVERED_PRICED,
            SlotStatus.PARTIAL,
            SlotStatus.EMPTY,
        ]

        items = _of_type(db.added, CandidateItem)
        assert len(items) == 2
        pump, seal = items
        assert pump.goods_amount == Decimal("1200.50")
        assert pump.goods_currency == "EUR"
        assert pump.has_price is True
        assert pump.status == CandidateItemStatus.CANDIDATE
        assert pump.supplier_country_snapshot == "DE"
        assert seal.has_price is False
        assert seal.status == CandidateItemStatus.NO_PRICE
        assert seal.supplier_country_snapshot == "CN"

    @pytest.mark.asyncio
    async def test_reimport_updates_existing_set(self) -> None:
        existing = CandidateSet(
            id=11,
            rfq_id=1,
            rfq_item_id=5,
            combo_hash="17+42",
            name="old",
            is_active=True,
        )
        db = _mock_db(
            _result(first=(5,)),
            _result(scalar=existing),
            MagicMock(),
            MagicMock(),
            MagicMock(),
        )
        service = CandidateImportService(db)

        result = await service.import_combinations(1, 5, [_combo(score="90")])

        assert result.inserted_count == 0
        assert result.updated_count == 1
        assert result.rows[0].candidate_set_id == 11
        assert existing.name == "Acme + Borg"
        assert existing.score_total == Decimal("90")
        # No new candidate set, children replaced under the same id
        assert _of_type(db.added, CandidateSet) == []
        assert db.execute.await_count == 5
        assert all(s.candidate_set_id == 11 for s in _of_type(db.added, CandidateSupplier))

    @pytest.mark.asyncio
    async def test_key_fallback_from_supplier_ids(self) -> None:
        db = _mock_db(_result(first=(5,)), _result(scalar=None))
        combo = _combo(key=None, supplier_names=None, supplier_ids=[42, 17])

        await CandidateImportService(db).import_combinations(1, 5, [combo])

        (candidate,) = _of_type(db.added, CandidateSet)
        assert candidate.combo_hash == "17+42"
        assert candidate.name == "Комбинация (42+17)"

    @pytest.mark.asyncio
    async def test_unknown_rfq_item(self) -> None:
        db = _mock_db(_result(first=None))
        with pytest.raises(NotFoundException, match="RFQ item 5"):
            await CandidateImportService(db).import_combinations(1, 5, [_combo()])
        db.begin_nested.return_value.rollback.assert_awaited_once()
