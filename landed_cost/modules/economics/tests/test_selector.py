"""Tests for the min-landed selector and the auto scenario snapshot."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from landed_cost.database.introspection import ColumnInfo
from landed_cost.exceptions import BusinessRuleException
from landed_cost.models.auto_scenario import AutoScenario
from landed_cost.modules.economics.line_options import EconomicsViews, LineOption, map_line_option
from landed_cost.modules.economics.selector import (
    SNAPSHOT_COLUMNS,
    MinLandedSelectorService,
    check_snapshot_columns,
    default_scenario_name,
    select_min_landed,
    snapshot_values,
)


def _option(
    key: str = "ITEM:1",
    landed: str | None = "100",
    eta: str | None = None,
    item_id: int | None = 1,
    response_line_id: int | None = 10,
    supplier: str = "A",
    fx_missing: bool = False,
    currency: str | None = "USD",
) -> LineOption:
    return LineOption(
        row_key=f"{key}:{supplier}",
        rfq_item_id=item_id,
        response_line_id=response_line_id,
        rfq_supplier_id=None,
        supplier_id=None,
        route_id=None,
        line_number=1,
        selection_key_norm=key,
        selection_key_raw=key,
        supplier_name=supplier,
        route_name="route",
        part_number="—",
        part_description="—",
        goods_amount=None,
        goods_currency="USD",
        logistics_amount=None,
        logistics_currency="USD",
        duty_amount=None,
        landed_amount=Decimal(landed) if landed is not None else None,
        landed_currency=currency,
        eta_total_days=Decimal(eta) if eta is not None else None,
        supplier_score=None,
        fx_missing=fx_missing,
    )


class TestSelectMinLanded:
    def test_cheapest_per_group(self) -> None:
        options = [
            _option("K1", "120", supplier="A"),
            _option("K1", "90", supplier="B"),
            _option("K2", "50", supplier="C"),
            _option("K2", "70", supplier="D"),
        ]
        winners = select_min_landed(options)
        assert [w.supplier_name for w in winners] == ["B", "C"]

    def test_tie_broken_by_lower_eta(self) -> None:
        options = [
            _option("K1", "100", eta="30", supplier="A"),
            _option("K1", "100", eta="20", supplier="B"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["B"]

    def test_tie_without_eta_keeps_first(self) -> None:
        options = [
            _option("K1", "100", eta=None, supplier="A"),
            _option("K1", "100", eta=None, supplier="B"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["A"]

    def test_tie_with_unknown_eta_keeps_first(self) -> None:
        options = [
            _option("K1", "100", eta=None, supplier="A"),
            _option("K1", "100", eta="9", supplier="B"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["A"]

    def test_tie_with_unknown_later_eta_keeps_first(self) -> None:
        options = [
            _option("K1", "100", eta="30", supplier="A"),
            _option("K1", "100", eta=None, supplier="B"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["A"]

    def test_option_without_currency_never_wins(self) -> None:
        options = [
            _option("K1", "50", currency=None, supplier="NoCur"),
            _option("K1", "80", supplier="Usd"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["Usd"]

    def test_mapped_row_without_currency_is_skipped(self) -> None:
        no_currency = map_line_option({"rfq_item_id": 1, "landed_amount": "50", "supplier_name": "NoCur"})
        priced = map_line_option(
            {"rfq_item_id": 1, "landed_amount": "80", "landed_currency": "USD", "supplier_name": "Usd"}
        )
        assert no_currency.is_comparable is False
        assert [w.supplier_name for w in select_min_landed([no_currency, priced])] == ["Usd"]

    def test_winner_not_more_expensive_than_any_member(self) -> None:
        amounts = ["310", "45.5", "300", "45.49", "1000", "46"]
        options = [_option("K1", a, supplier=str(i)) for i, a in enumerate(amounts)]
        (winner,) = select_min_landed(options)
        assert all(winner.landed_amount <= o.landed_amount for o in options)
        assert winner.landed_amount == Decimal("45.49")

    def test_skips_incomparable_options(self) -> None:
        options = [
            _option("K1", None, supplier="no-landed"),
            _option("K1", "1", fx_missing=True, supplier="fx"),
            _option("K1", "2", item_id=None, supplier="no-item"),
            _option("K1", "500", supplier="ok"),
        ]
        assert [w.supplier_name for w in select_min_landed(options)] == ["ok"]

    def test_require_response_line(self) -> None:
        options = [
            _option("K1", "10", response_line_id=None, supplier="A"),
            _option("K1", "20", supplier="B"),
        ]
        winners = select_min_landed(options, require_response_line=True)
        assert [w.supplier_name for w in winners] == ["B"]

    def test_same_key_different_items_are_separate_groups(self) -> None:
        options = [_option("K1", "10", item_id=1), _option("K1", "20", item_id=2)]
        assert len(select_min_landed(options)) == 2

    def test_no_options(self) -> None:
        assert select_min_landed([]) == []


class TestSnapshotColumns:
    def test_known_columns_pass(self) -> None:
        columns = [ColumnInfo(name, True, False) for name in SNAPSHOT_COLUMNS]
        columns.append(ColumnInfo("id", False, True))
        assert check_snapshot_columns(columns) is False

    def test_required_response_line(self) -> None:
        columns = [ColumnInfo("scenario_id", False, False), ColumnInfo("response_line_id", False, False)]
        assert check_snapshot_columns(columns) is True

    def test_unknown_required_column_rejected(self) -> None:
        columns = [ColumnInfo("scenario_id", False, False), ColumnInfo("tenant_code", False, False)]
        with pytest.raises(BusinessRuleException, match="unknown required snapshot columns"):
            check_snapshot_columns(columns)

    def test_unknown_column_with_default_is_fine(self) -> None:
        columns = [ColumnInfo("tenant_code", False, True)]
        assert check_snapshot_columns(columns) is False

    def test_snapshot_values_filtered_by_table(self) -> None:
        values = snapshot_values(_option("K1", "10"), 7, {"scenario_id", "landed_amount"})
        assert values == {"scenario_id": 7, "landed_amount": Decimal("10")}


def test_default_scenario_name() -> None:
    assert default_scenario_name(datetime(2026, 1, 2, 3, 4)) == "AUTO MIN_LANDED 2026-01-02 03:04"


def _mock_db(new_id: int = 77) -> MagicMock:
    db = MagicMock()
    savepoint = MagicMock()
    savepoint.commit = AsyncMock()
    savepoint.rollback = AsyncMock()
    db.begin_nested = AsyncMock(return_value=savepoint)
    db.execute = AsyncMock()
    added: list = []
    db.add.side_effect = added.append

    async def _flush() -> None:
        for obj in added:
            if isinstance(obj, AutoScenario) and obj.id is None:
                obj.id = new_id

    db.flush = AsyncMock(side_effect=_flush)
    db.added = added
    return db


class TestCreateAutoScenario:
    @pytest.mark.asyncio
    async def test_snapshots_winners(self) -> None:
        db = _mock_db()
        service = MinLandedSelectorService(db)
        service.line_options = MagicMock()
        service.line_options.pick_views = AsyncMock(
            return_value=EconomicsViews("vw_rfq_economics_line_options", None)
        )
        service.line_options.load_line_options = AsyncMock(
            return_value=[_option("K1", "100", supplier="A"), _option("K1", "80", supplier="B")]
        )
        columns = [ColumnInfo(name, True, False) for name in SNAPSHOT_COLUMNS]

        with patch(
            "landed_cost.modules.economics.selector.table_exists", AsyncMock(return_value=True)
        ), patch(
            "landed_cost.modules.economics.selector.get_table_columns",
            AsyncMock(return_value=columns),
        ):
            result = await service.create_auto_scenario(1, name=None, strategy=None)

        assert result.scenario_id == 77
        assert result.picked_lines == 1
        assert result.strategy == "MIN_LANDED"
        assert result.name.startswith("AUTO MIN_LANDED ")
        rows = db.execute.await_args.args[1]
        assert rows[0]["landed_amount"] == Decimal("80")
        assert rows[0]["scenario_id"] == 77

    @pytest.mark.asyncio
    async def test_zero_winners_still_creates_scenario(self) -> None:
        db = _mock_db()
        service = MinLandedSelectorService(db)
        service.line_options = MagicMock()
        service.line_options.pick_views = AsyncMock(
            return_value=EconomicsViews("vw_rfq_economics_line_options", None)
        )
        service.line_options.load_line_options = AsyncMock(return_value=[])

        with patch(
            "landed_cost.modules.economics.selector.table_exists", AsyncMock(return_value=True)
        ), patch(
            "landed_cost.modules.economics.selector.get_table_columns",
            AsyncMock(return_value=[ColumnInfo("scenario_id", False, False)]),
        ):
            result = await service.create_auto_scenario(1, name="Mine", strategy="CUSTOM")

        assert result.picked_lines == 0
        assert result.name == "Mine"
        assert result.strategy == "CUSTOM"
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_snapshot_table(self) -> None:
        service = MinLandedSelectorService(_mock_db())
        with patch(
            "landed_cost.modules.economics.selector.table_exists", AsyncMock(return_value=False)
        ):
            with pytest.raises(BusinessRuleException, match="not available"):
                await service.create_auto_scenario(1)

    @pytest.mark.asyncio
    async def test_missing_line_view(self) -> None:
        service = MinLandedSelectorService(_mock_db())
        service.line_options = MagicMock()
        service.line_options.pick_views = AsyncMock(return_value=EconomicsViews(None, None))
        with patch(
            "landed_cost.modules.economics.selector.table_exists", AsyncMock(return_value=True)
        ):
            with pytest.raises(BusinessRuleException, match="line-option view"):
                await service.create_auto_scenario(1)
