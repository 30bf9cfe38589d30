"""Line option mapper and the reporting-view reads that feed it.

A ``LineOption`` is a read projection: one supplier offer for one RFQ line,
rebuilt from either the normalized or the base economics view on every read.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.introspection import (
    is_missing_object_error,
    quote_identifier,
    safe_identifier,
    view_exists,
)
from landed_cost.database.session import atomic
from landed_cost.models.fx_rate import RfqEconSettings
from landed_cost.modules.economics.constants import (
    ITEM_KEY_TEMPLATE,
    LINE_LABEL_TEMPLATE,
    LINE_OPTION_VIEWS,
    NORMALIZED_LINE_VIEW,
    SUPPLIER_SUMMARY_VIEWS,
    UNKNOWN_ROUTE_LABEL,
    UNKNOWN_SUPPLIER_LABEL,
)
from landed_cost.modules.economics.converter import RateSource
from landed_cost.modules.economics.normalizer import (
    to_currency_code,
    to_decimal_or_null,
    to_positive_integer,
    to_trimmed_string_or_null,
)

logger = logging.getLogger(__name__)


@dataclass
class LineOption:
    row_key: str
    rfq_item_id: int | None
    response_line_id: int | None
    rfq_supplier_id: int | None
    supplier_id: int | None
    route_id: int | None
    line_number: int | None
    selection_key_norm: str
    selection_key_raw: str
    supplier_name: str
    route_name: str
    part_number: str
    part_description: str
    goods_amount: Decimal | None
    goods_currency: str | None
    logistics_amount: Decimal | None
    logistics_currency: str | None
    duty_amount: Decimal | None
    landed_amount: Decimal | None
    landed_currency: str | None
    eta_total_days: Decimal | None
    supplier_score: Decimal | None
    fx_missing: bool
    # True when landed_currency was guessed from goods/logistics currency:
    # display only, never a basis for conversion.
    landed_currency_inferred: bool = False

    @property
    def is_comparable(self) -> bool:
        return (
            self.landed_amount is not None
            and not self.fx_missing
            and self.landed_currency is not None
        )


@dataclass
class SupplierSummary:
    supplier_name: str
    route_name: str
    lines_count: int = 0
    goods_total: Decimal | None = None
    logistics_total: Decimal | None = None
    duty_total: Decimal | None = None
    landed_total: Decimal | None = None
    lines_with_currency_gap: int = 0
    calc_currency: str | None = None
    eta_days_worst: Decimal | None = None
    eta_days_avg: Decimal | None = None
    avg_supplier_score: Decimal | None = None


@dataclass(frozen=True)
class EconomicsViews:
    line_view: str | None
    supplier_view: str | None

    @property
    def is_norm(self) -> bool:
        return self.line_view == NORMALIZED_LINE_VIEW


@dataclass
class FxPreloadReport:
    target_currency: str | None
    requested: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


# ── Pure mapping ────────────────────────────────────────────────────────────


def _prefer_norm(row: Mapping, key: str) -> object:
    """``row[key + '_norm']`` when present (even if zero), else ``row[key]``."""
    value = row.get(f"{key}_norm")
    return value if value is not None else row.get(key)


def _first_not_none(*values: object) -> object:
    for value in values:
        if value is not None:
            return value
    return None


def map_line_option(row: Mapping, idx: int = 0) -> LineOption:
    """Map one denormalized view row onto a canonical ``LineOption``."""
    line_number = to_positive_integer(_first_not_none(row.get("rfq_line_number"), row.get("line_number")))
    rfq_item_id = to_positive_integer(row.get("rfq_item_id"))
    response_line_id = to_positive_integer(row.get("response_line_id"))

    explicit_key = to_trimmed_string_or_null(row.get("selection_key_norm")) or to_trimmed_string_or_null(
        row.get("selection_key")
    )
    selection_key_raw = explicit_key or ITEM_KEY_TEMPLATE.format(item_id=rfq_item_id or idx + 1)
    if line_number:
        selection_key_norm = explicit_key or LINE_LABEL_TEMPLATE.format(line_number=line_number)
    else:
        selection_key_norm = selection_key_raw

    landed_amount = to_decimal_or_null(_prefer_norm(row, "landed_amount"))
    landed_currency = (
        to_currency_code(row.get("landed_currency_norm"))
        or to_currency_code(row.get("landed_currency"))
        or to_currency_code(row.get("target_currency"))
    )

    fx_flag = to_decimal_or_null(
        _first_not_none(row.get("fx_missing"), row.get("lines_with_currency_mismatch"), 0)
    )
    fx_missing = fx_flag is not None and fx_flag > 0
    if not fx_missing and "/" in str(row.get("landed_currency") or ""):
        # "USD/EUR": mixed currencies the view could not resolve
        fx_missing = True

    inferred = False
    if landed_currency is None and not fx_missing and landed_amount is not None:
        landed_currency = to_currency_code(row.get("goods_currency") or row.get("logistics_currency"))
        inferred = landed_currency is not None

    part_number = to_trimmed_string_or_null(
        row.get("original_cat_number") or row.get("component_cat_number")
    )
    part_description = to_trimmed_string_or_null(
        row.get("original_description_ru")
        or row.get("component_description_ru")
        or row.get("item_description")
        or row.get("description")
    )

    return LineOption(
        row_key=explicit_key
        or f"{row.get('rfq_item_id') or 'item'}:{row.get('response_line_id') or 'resp'}:{idx}",
        rfq_item_id=rfq_item_id,
        response_line_id=response_line_id,
        rfq_supplier_id=to_positive_integer(row.get("rfq_supplier_id")),
        supplier_id=to_positive_integer(row.get("supplier_id")),
        route_id=to_positive_integer(row.get("route_id")),
        line_number=line_number,
        selection_key_norm=selection_key_norm,
        selection_key_raw=selection_key_raw,
        supplier_name=to_trimmed_string_or_null(row.get("supplier_name")) or UNKNOWN_SUPPLIER_LABEL,
        route_name=to_trimmed_string_or_null(row.get("route_name")) or UNKNOWN_ROUTE_LABEL,
        part_number=part_number or "—",
        part_description=part_description or "—",
        goods_amount=to_decimal_or_null(_prefer_norm(row, "goods_amount")),
        goods_currency=to_currency_code(row.get("goods_currency")),
        logistics_amount=to_decimal_or_null(_prefer_norm(row, "logistics_amount")),
        logistics_currency=to_currency_code(row.get("logistics_currency")),
        duty_amount=to_decimal_or_null(_prefer_norm(row, "duty_amount")),
        landed_amount=landed_amount,
        landed_currency=landed_currency,
        eta_total_days=to_decimal_or_null(row.get("eta_total_days")),
        supplier_score=to_decimal_or_null(row.get("supplier_score")),
        fx_missing=fx_missing,
        landed_currency_inferred=inferred,
    )


def line_option_sort_key(option: LineOption) -> tuple:
    """Line number asc, landed amount asc (nulls last for both), supplier name."""
    return (
        option.line_number is None,
        option.line_number or 0,
        option.landed_amount is None,
        option.landed_amount or Decimal(0),
        option.supplier_name,
    )


def sort_line_options(options: list[LineOption]) -> list[LineOption]:
    return sorted(options, key=line_option_sort_key)


def supplier_summary_sort_key(summary: SupplierSummary) -> tuple:
    return (
        summary.landed_total is None,
        summary.landed_total or Decimal(0),
        summary.eta_days_worst is None,
        summary.eta_days_worst or Decimal(0),
        summary.supplier_name,
    )


def summarize_line_options(options: list[LineOption]) -> list[SupplierSummary]:
    """Per supplier+route totals, used when no supplier-summary view exists."""
    grouped: dict[str, SupplierSummary] = {}
    for option in options:
        key = f"{option.supplier_name}::{option.route_name}"
        summary = grouped.get(key)
        if summary is None:
            summary = SupplierSummary(
                supplier_name=option.supplier_name,
                route_name=option.route_name,
                goods_total=Decimal(0),
                logistics_total=Decimal(0),
                duty_total=Decimal(0),
                landed_total=Decimal(0),
                calc_currency=option.landed_currency,
            )
            grouped[key] = summary
        summary.lines_count += 1
        summary.goods_total += option.goods_amount or 0
        summary.logistics_total += option.logistics_amount or 0
        summary.duty_total += option.duty_amount or 0
        summary.landed_total += option.landed_amount or 0
        if option.fx_missing:
            summary.lines_with_currency_gap += 1
        if option.eta_total_days is not None:
            summary.eta_days_worst = max(summary.eta_days_worst or Decimal(0), option.eta_total_days)
    return sorted(grouped.values(), key=supplier_summary_sort_key)


def map_supplier_summary(row: Mapping) -> SupplierSummary:
    return SupplierSummary(
        supplier_name=to_trimmed_string_or_null(row.get("supplier_name")) or UNKNOWN_SUPPLIER_LABEL,
        route_name=to_trimmed_string_or_null(row.get("route_name")) or UNKNOWN_ROUTE_LABEL,
        lines_count=int(to_decimal_or_null(row.get("lines_count")) or 0),
        goods_total=to_decimal_or_null(_prefer_norm(row, "goods_total")),
        logistics_total=to_decimal_or_null(_prefer_norm(row, "logistics_total")),
        duty_total=to_decimal_or_null(_prefer_norm(row, "duty_total")),
        landed_total=to_decimal_or_null(
            _first_not_none(
                row.get("landed_total_norm"),
                row.get("landed_total_known_currency"),
                row.get("landed_total"),
            )
        ),
        lines_with_currency_gap=int(
            to_decimal_or_null(
                _first_not_none(row.get("lines_with_fx_missing"), row.get("lines_with_currency_mismatch"), 0)
            )
            or 0
        ),
        calc_currency=to_currency_code(
            _first_not_none(row.get("calc_currency"), row.get("landed_currency_norm"), row.get("currency_hint"))
        ),
        eta_days_worst=to_decimal_or_null(row.get("eta_days_worst")),
        eta_days_avg=to_decimal_or_null(row.get("eta_days_avg")),
        avg_supplier_score=to_decimal_or_null(row.get("avg_supplier_score")),
    )


# ── View-backed reads ───────────────────────────────────────────────────────


class LineOptionService:
    """Reads line options and supplier summaries from the economics views."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def pick_views(self) -> EconomicsViews:
        """Prefer the normalized views, fall back to the base ones."""
        line_view = await self._first_existing(LINE_OPTION_VIEWS)
        supplier_view = await self._first_existing(SUPPLIER_SUMMARY_VIEWS)
        return EconomicsViews(line_view=line_view, supplier_view=supplier_view)

    async def _first_existing(self, names: tuple[str, ...]) -> str | None:
        for name in names:
            if await view_exists(self.db, name):
                return name
        return None

    async def load_line_options(self, rfq_id: int, line_view: str | None) -> list[LineOption]:
        if not line_view or safe_identifier(line_view) is None:
            return []
        rows = await self._select_view_rows(line_view, rfq_id)
        return sort_line_options([map_line_option(row, idx) for idx, row in enumerate(rows)])

    async def load_supplier_summary(
        self,
        rfq_id: int,
        supplier_view: str | None,
        line_options: list[LineOption],
    ) -> list[SupplierSummary]:
        if not supplier_view:
            return summarize_line_options(line_options)
        if safe_identifier(supplier_view) is None:
            return []
        rows = await self._select_view_rows(supplier_view, rfq_id)
        return sorted((map_supplier_summary(row) for row in rows), key=supplier_summary_sort_key)

    async def _select_view_rows(self, view: str, rfq_id: int) -> list[Mapping]:
        sql = text(f"SELECT * FROM {quote_identifier(view)} WHERE rfq_id = :rfq_id")
        try:
            async with atomic(self.db):
                result = await self.db.execute(sql, {"rfq_id": rfq_id})
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            if is_missing_object_error(exc):
                logger.warning("Economics view %s unavailable: %s", view, exc)
                return []
            raise

    async def get_target_currency(self, rfq_id: int) -> str | None:
        try:
            async with atomic(self.db):
                result = await self.db.execute(
                    select(RfqEconSettings.target_currency).where(RfqEconSettings.rfq_id == rfq_id)
                )
                value = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            if is_missing_object_error(exc):
                return None
            raise
        return to_currency_code(value)

    async def preload_fx_rates(
        self,
        rfq_id: int,
        line_view: str | None,
        rate_source: RateSource,
        target_currency_hint: str | None = None,
    ) -> FxPreloadReport:
        """Warm the FX cache for every currency the RFQ's lines will need.

        Pairs are requested one after another; a failing pair is logged and
        skipped.
        """
        report = FxPreloadReport(target_currency=None)
        if not line_view or safe_identifier(line_view) is None:
            return report
        view = quote_identifier(line_view)

        target = to_currency_code(target_currency_hint) or await self.get_target_currency(rfq_id)
        if not target:
            result = await self.db.execute(
                text(
                    f"SELECT target_currency FROM {view} "
                    "WHERE rfq_id = :rfq_id AND target_currency IS NOT NULL "
                    "AND TRIM(target_currency) <> '' LIMIT 1"
                ),
                {"rfq_id": rfq_id},
            )
            target = to_currency_code(result.scalar_one_or_none())
        if not target:
            return report
        report.target_currency = target

        result = await self.db.execute(
            text(
                "SELECT DISTINCT UPPER(TRIM(goods_currency)) AS goods_currency, "
                f"UPPER(TRIM(logistics_currency)) AS logistics_currency FROM {view} "
                "WHERE rfq_id = :rfq_id"
            ),
            {"rfq_id": rfq_id},
        )
        needed: list[str] = []
        for row in result.mappings().all():
            for code in (to_currency_code(row["goods_currency"]), to_currency_code(row["logistics_currency"])):
                if code and code != target and code not in needed:
                    needed.append(code)

        for base in needed:
            report.requested.append(base)
            try:
                await rate_source.get_rate(base, target, force_refresh=False)
            except Exception as exc:
                report.failed.append(base)
                logger.warning("FX preload failed %s->%s: %s", base, target, exc)
        return report
