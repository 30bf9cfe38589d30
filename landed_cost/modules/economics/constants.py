"""Reporting views, display labels, sentinels and keyword maps."""

from __future__ import annotations

from decimal import Decimal

# ── Reporting views (external, chosen at runtime; normalized first) ─────────
LINE_OPTION_VIEWS: tuple[str, ...] = (
    "vw_rfq_economics_line_options_norm",
    "vw_rfq_economics_line_options",
)
SUPPLIER_SUMMARY_VIEWS: tuple[str, ...] = (
    "vw_rfq_economics_supplier_summary_norm",
    "vw_rfq_economics_supplier_summary",
)
NORMALIZED_LINE_VIEW = LINE_OPTION_VIEWS[0]

# Table that receives min-landed snapshot lines (introspected before insert)
AUTO_SCENARIO_LINES_TABLE = "auto_scenario_lines"

# External reference tables
RFQ_ITEMS_TABLE = "rfq_items"
SUPPLIERS_TABLE = "part_suppliers"

# ── Display fallbacks ────────────────────────────────────────────────────────
UNKNOWN_SUPPLIER_LABEL = "Поставщик не указан"
UNKNOWN_ROUTE_LABEL = "Маршрут не указан"
LINE_LABEL_TEMPLATE = "Строка {line_number}"
ITEM_KEY_TEMPLATE = "ITEM:{item_id}"
COMBO_NAME_TEMPLATE = "Комбинация ({ids})"
SLOT_KEY_TEMPLATE = "slot_{n}"
SLOT_NAME_TEMPLATE = "Слот {n}"
DRAFT_SCENARIO_NAME_TEMPLATE = "Черновой сценарий {ts}"
AUTO_SCENARIO_NAME_TEMPLATE = "AUTO MIN_LANDED {ts}"
DEFAULT_AUTO_STRATEGY = "MIN_LANDED"

# ── Grouping ─────────────────────────────────────────────────────────────────
UNKNOWN_COUNTRY = "UN"
UNKNOWN_COUNTRY_LABEL = "UNKNOWN"
STANDARD_CONSOLIDATION = "standard"

# ── Money ────────────────────────────────────────────────────────────────────
MONEY_QUANT = Decimal("0.0001")

# ── Free-text hint keywords (lower-case substrings) ──────────────────────────
COMBO_STATUS_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("готов", "selected_for_economics"),
    ("кандид", "candidate"),
)
CONSOLIDATION_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("выс", "high"),
    ("сред", "medium"),
    ("низ", "low"),
)

# Coverage codes attached to assignment-preview slots
SLOT_CODES_COVERED = frozenset({"Q+P", "Q+OEM"})
SLOT_CODES_PARTIAL = frozenset({"Q+", "Q?", "Q-", "Q!"})
SLOT_CODES_EMPTY = frozenset({"NQ", "NS", ""})

# ── Conversion warnings ──────────────────────────────────────────────────────
WARNING_AMOUNT_MISSING = "amount_missing"
WARNING_CURRENCY_MISSING = "currency_missing"
WARNING_FX_FAILED = "fx_failed:{base}->{quote}"
