"""Tests for scenario recalculation: totals, warnings, status and persistence."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from landed_cost.exceptions import BusinessRuleException, FxRateUnavailableError
from landed_cost.models.enums import CalcStatus, ScenarioStatus
from landed_cost.modules.economics.converter import CurrencyConverter
from landed_cost.modules.economics.recalculator import (
    ItemLine,
    ScenarioRecalculator,
    compute_totals,
    effective_goods_amount,
)

RATES = {("EUR", "USD"): Decimal("1.1")}


class FakeRateSource:
    async def get_rate(self, base_raw, quote_raw, *, force_refresh: bool = False):
        try:
            return SimpleNamespace(rate=RATES[(base_raw, quote_raw)])
        except KeyError:
            raise FxRateUnavailableError(base_raw, quote_raw, "no rate") from None


def _item(item_id: int, amount: str | None, currency: str | None, qty=None, override=None) -> ItemLine:
    return ItemLine(
        candidate_item_id=item_id,
        goods_amount=Decimal(amount) if amount is not None else None,
        goods_currency=currency,
        qty=Decimal(qty) if qty is not None else None,
        qty_override=Decimal(override) if override is not None else None,
    )


def _route(
    route_id: int,
    status: CalcStatus,
    amount: str | None,
    currency: str | None = "USD",
    duty: str | None = None,
    duty_currency: str | None = None,
    eta_min: int | None = None,
    eta_max: int | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=route_id,
        shipment_group_id=route_id,
        calc_status=status,
        logistics_amount_calc=Decimal(amount) if amount is not None else None,
        currency=currency,
        duty_amount=Decimal(duty) if duty is not None else None,
        duty_currency=duty_currency,
        eta_min_days_calc=eta_min,
        eta_max_days_calc=eta_max,
    )


def _cost(cost_id: int, amount: str | None, currency: str | None, quantity: str = "1") -> SimpleNamespace:
    return SimpleNamespace(
        id=cost_id,
        amount=Decimal(amount) if amount is not None else None,
        currency=currency,
        quantity=Decimal(quantity),
    )


def _inputs():
    items = [
        _item(1, "100", "USD", qty="2", override="4"),
        _item(2, "50", "EUR"),
        _item(3, None, "USD"),
    ]
    routes = [
        _route(1, CalcStatus.OK, "300", duty="20", eta_min=10, eta_max=20),
        _route(2, CalcStatus.WARNING, "100", currency="EUR", eta_min=15, eta_max=18),
        _route(3, CalcStatus.ERROR, None),
    ]
    other_costs = [_cost(1, "10", "USD", quantity="3"), _cost(2, "5", "CNY")]
    return items, routes, other_costs


class TestEffectiveGoodsAmount:
    def test_scaled_by_override(self) -> None:
        assert effective_goods_amount(_item(1, "100", "USD", qty="2", override="4")) == Decimal("200")

    def test_same_quantity_not_scaled(self) -> None:
        assert effective_goods_amount(_item(1, "100", "USD", qty="2", override="2")) == Decimal("100")

    def test_missing_amount(self) -> None:
        assert effective_goods_amount(_item(1, None, "USD", qty="2", override="4")) is None


class TestComputeTotals:
    @pytest.mark.asyncio
    async def test_mixed_inputs(self) -> None:
        items, routes, other_costs = _inputs()
        totals = await compute_totals(
            CurrencyConverter(FakeRateSource()), "USD", items, routes, other_costs
        )

        assert totals.goods_total == Decimal("255.0000")
        assert totals.logistics_total == Decimal("410.0000")
        assert totals.duty_total == Decimal("20.0000")
        assert totals.other_total == Decimal("30.0000")
        assert totals.landed_total == Decimal("715.0000")
        assert totals.selected_groups == 3
        assert totals.route_errors == 1
        assert totals.route_warnings == 1
        assert [(w.source, w.ref_id, w.reason) for w in totals.warnings] == [
            ("item", 3, "amount_missing"),
            ("other_cost", 2, "fx_failed:CNY->USD"),
        ]
        assert totals.warning_count == 4
        assert totals.eta_best_days == 15
        assert totals.eta_worst_days == 20
        assert totals.status == ScenarioStatus.DRAFT

    @pytest.mark.asyncio
    async def test_repeated_calls_are_identical(self) -> None:
        items, routes, other_costs = _inputs()
        first = await compute_totals(
            CurrencyConverter(FakeRateSource()), "USD", items, routes, other_costs
        )
        second = await compute_totals(
            CurrencyConverter(FakeRateSource()), "USD", items, routes, other_costs
        )
        assert first == second

    @pytest.mark.asyncio
    async def test_clean_routes_are_calculated(self) -> None:
        totals = await compute_totals(
            CurrencyConverter(FakeRateSource()),
            "USD",
            [_item(1, "10", "USD")],
            [_route(1, CalcStatus.OK, "5")],
            [],
        )
        assert totals.status == ScenarioStatus.CALCULATED
        assert totals.warning_count == 0
        assert totals.landed_total == Decimal("15.0000")

    @pytest.mark.asyncio
    async def test_no_routes_is_draft(self) -> None:
        totals = await compute_totals(
            CurrencyConverter(FakeRateSource()), "USD", [], [], [_cost(1, "10", "USD")]
        )
        assert totals.status == ScenarioStatus.DRAFT
        assert totals.other_total == Decimal("10.0000")

    @pytest.mark.asyncio
    async def test_unpriced_routes_count_once_as_route_errors(self) -> None:
        routes = [
            _route(1, CalcStatus.ERROR, "999"),
            _route(2, CalcStatus.NOT_APPLICABLE, None),
            _route(3, CalcStatus.DRAFT, None),
        ]
        totals = await compute_totals(CurrencyConverter(FakeRateSource()), "USD", [], routes, [])

        assert totals.logistics_total == Decimal("0.0000")
        assert totals.route_errors == 3
        assert totals.warnings == []
        assert totals.warning_count == 3
        assert totals.status == ScenarioStatus.DRAFT

    @pytest.mark.asyncio
    async def test_duty_uses_its_own_currency(self) -> None:
        totals = await compute_totals(
            CurrencyConverter(FakeRateSource()),
            "USD",
            [],
            [_route(1, CalcStatus.OK, "0", duty="10", duty_currency="EUR")],
            [],
        )
        assert totals.duty_total == Decimal("11.0000")


def _mock_db() -> MagicMock:
    db = MagicMock()
    savepoint = MagicMock()
    savepoint.commit = AsyncMock()
    savepoint.rollback = AsyncMock()
    db.begin_nested = AsyncMock(return_value=savepoint)
    db.flush = AsyncMock()
    return db


def _scenario(status: ScenarioStatus) -> SimpleNamespace:
    return SimpleNamespace(
        id=1,
        status=status,
        calc_currency="USD",
        goods_total=None,
        logistics_total=None,
        duty_total=None,
        other_total=None,
        landed_total=None,
        eta_best_days=None,
        eta_worst_days=None,
        warning_count=0,
    )


class TestScenarioRecalculator:
    async def _run(self, scenario, routes, items, other_costs):
        recalculator = ScenarioRecalculator(_mock_db(), CurrencyConverter(FakeRateSource()))
        with patch(
            "landed_cost.modules.economics.recalculator.ScenarioService.get_scenario",
            AsyncMock(return_value=scenario),
        ), patch.object(
            recalculator, "_selected_routes", AsyncMock(return_value=routes)
        ), patch.object(
            recalculator, "_included_items", AsyncMock(return_value=items)
        ), patch.object(
            recalculator, "_enabled_other_costs", AsyncMock(return_value=other_costs)
        ):
            return await recalculator.recalculate(scenario.id)

    @pytest.mark.asyncio
    async def test_writes_totals(self) -> None:
        scenario = _scenario(ScenarioStatus.DRAFT)
        items, routes, other_costs = _inputs()

        result, totals = await self._run(scenario, routes, items, other_costs)

        assert result is scenario
        assert scenario.landed_total == Decimal("715.0000")
        assert scenario.warning_count == 4
        assert scenario.status == ScenarioStatus.DRAFT
        assert totals.route_errors == 1

    @pytest.mark.asyncio
    async def test_selected_status_kept_when_calculable(self) -> None:
        scenario = _scenario(ScenarioStatus.SELECTED)
        await self._run(scenario, [_route(1, CalcStatus.OK, "5")], [_item(1, "10", "USD")], [])
        assert scenario.status == ScenarioStatus.SELECTED
        assert scenario.landed_total == Decimal("15.0000")

    @pytest.mark.asyncio
    async def test_selected_falls_back_to_draft_on_route_error(self) -> None:
        scenario = _scenario(ScenarioStatus.SELECTED)
        await self._run(scenario, [_route(1, CalcStatus.ERROR, None)], [], [])
        assert scenario.status == ScenarioStatus.DRAFT

    @pytest.mark.asyncio
    async def test_archived_rejected(self) -> None:
        with pytest.raises(BusinessRuleException, match="archived"):
            await self._run(_scenario(ScenarioStatus.ARCHIVED), [], [], [])
