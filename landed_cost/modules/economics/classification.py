"""Free-text hint classification for imported combinations.

The producing system sends Russian-language status and consolidation hints.
Matching is by lower-case substring with an explicit default branch; unknown
text never raises.
"""

from __future__ import annotations

from landed_cost.models.enums import CandidateSetStatus, ConsolidationPotential, SlotStatus
from landed_cost.modules.economics.constants import (
    COMBO_STATUS_KEYWORDS,
    CONSOLIDATION_KEYWORDS,
    SLOT_CODES_COVERED,
    SLOT_CODES_EMPTY,
    SLOT_CODES_PARTIAL,
)


def _normalize_hint(value: object) -> str:
    return str(value or "").strip().lower()


def parse_combo_status(value: object) -> CandidateSetStatus:
    """Map a status hint: empty → draft, "готов…" → selected_for_economics, otherwise candidate."""
    hint = _normalize_hint(value)
    if not hint:
        return CandidateSetStatus.DRAFT
    for keyword, status in COMBO_STATUS_KEYWORDS:
        if keyword in hint:
            return CandidateSetStatus(status)
    return CandidateSetStatus.CANDIDATE


def parse_consolidation_potential(value: object) -> ConsolidationPotential:
    hint = _normalize_hint(value)
    if hint in {p.value for p in ConsolidationPotential}:
        return ConsolidationPotential(hint)
    for keyword, potential in CONSOLIDATION_KEYWORDS:
        if keyword in hint:
            return ConsolidationPotential(potential)
    return ConsolidationPotential.UNKNOWN


def parse_slot_status(code: object) -> SlotStatus:
    """Map an assignment-preview coverage code onto a slot status."""
    normalized = str(code or "").strip().upper()
    if normalized in SLOT_CODES_COVERED:
        return SlotStatus.COVERED_PRICED
    if normalized in SLOT_CODES_PARTIAL:
        return SlotStatus.PARTIAL
    if normalized in SLOT_CODES_EMPTY:
        return SlotStatus.EMPTY
    return SlotStatus.PARTIAL
