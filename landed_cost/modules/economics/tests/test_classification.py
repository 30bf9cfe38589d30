"""Tests for combination hint classification."""

from __future__ import annotations

import pytest

from landed_cost.models.enums import CandidateSetStatus, ConsolidationPotential, SlotStatus
from landed_cost.modules.economics.classification import (
    parse_combo_status,
    parse_consolidation_potential,
    parse_slot_status,
)


class TestParseComboStatus:
    @pytest.mark.parametrize(
        ("hint", "expected"),
        [
            (None, CandidateSetStatus.DRAFT),
            ("   ", CandidateSetStatus.DRAFT),
            ("Готово к экономике", CandidateSetStatus.SELECTED_FOR_ECONOMICS),
            ("Кандидат", CandidateSetStatus.CANDIDATE),
            ("needs review", CandidateSetStatus.CANDIDATE),
        ],
    )
    def test_hints(self, hint, expected) -> None:
        assert parse_combo_status(hint) == expected


class TestParseConsolidationPotential:
    @pytest.mark.parametrize(
        ("hint", "expected"),
        [
            ("high", ConsolidationPotential.HIGH),
            (" LOW ", ConsolidationPotential.LOW),
            ("Высокий", ConsolidationPotential.HIGH),
            ("средний потенциал", ConsolidationPotential.MEDIUM),
            ("низкий", ConsolidationPotential.LOW),
            ("", ConsolidationPotential.UNKNOWN),
            ("maybe", ConsolidationPotential.UNKNOWN),
        ],
    )
    def test_hints(self, hint, expected) -> None:
        assert parse_consolidation_potential(hint) == expected


class TestParseSlotStatus:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("Q+P", SlotStatus.COVERED_PRICED),
            ("q+oem", SlotStatus.COVERED_PRICED),
            ("Q?", SlotStatus.PARTIAL),
            ("NQ", SlotStatus.EMPTY),
            (None, SlotStatus.EMPTY),
            ("weird", SlotStatus.PARTIAL),
        ],
    )
    def test_codes(self, code, expected) -> None:
        assert parse_slot_status(code) == expected
