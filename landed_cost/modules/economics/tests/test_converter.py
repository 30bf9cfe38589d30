"""Tests for CurrencyConverter."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from landed_cost.exceptions import FxRateUnavailableError
from landed_cost.modules.economics.converter import CurrencyConverter


class FakeRateSource:
    def __init__(self, rates: dict[tuple[str, str], Decimal], error: Exception | None = None) -> None:
        self.rates = rates
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def get_rate(self, base_raw, quote_raw, *, force_refresh: bool = False):
        self.calls.append((base_raw, quote_raw))
        if self.error is not None:
            raise self.error
        try:
            return SimpleNamespace(rate=self.rates[(base_raw, quote_raw)])
        except KeyError:
            raise FxRateUnavailableError(base_raw, quote_raw, "no rate") from None


class TestIdentity:
    @pytest.mark.asyncio
    async def test_same_currency_returns_value_unchanged(self) -> None:
        source = FakeRateSource({})
        converter = CurrencyConverter(source)

        result = await converter.convert(Decimal("123.456789"), "usd", "USD")

        assert result.converted is True
        assert result.value == Decimal("123.456789")
        assert result.rate == Decimal("1")
        assert source.calls == []


class TestConversion:
    @pytest.mark.asyncio
    async def test_reciprocal_round_trip(self) -> None:
        source = FakeRateSource(
            {("USD", "EUR"): Decimal("0.8"), ("EUR", "USD"): Decimal("1.25")}
        )
        converter = CurrencyConverter(source)
        original = Decimal("123.4567")

        there = await converter.convert(original, "USD", "EUR")
        back = await converter.convert(there.value, "EUR", "USD")

        assert there.value == Decimal("98.7654")
        assert abs(back.value - original) <= Decimal("0.0001")

    @pytest.mark.asyncio
    async def test_result_is_quantized(self) -> None:
        converter = CurrencyConverter(FakeRateSource({("CNY", "USD"): Decimal("0.138888")}))
        result = await converter.convert("100", "CNY", "USD")
        assert result.value == Decimal("13.8888")
        assert result.rate == Decimal("0.138888")

    @pytest.mark.asyncio
    async def test_rate_is_memoised_per_pair(self) -> None:
        source = FakeRateSource({("CNY", "USD"): Decimal("0.14")})
        converter = CurrencyConverter(source)

        await converter.convert(10, "CNY", "USD")
        await converter.convert(20, "cny", "usd")

        assert source.calls == [("CNY", "USD")]


class TestWarnings:
    @pytest.mark.asyncio
    async def test_missing_amount(self) -> None:
        result = await CurrencyConverter(FakeRateSource({})).convert(None, "USD", "EUR")
        assert result.converted is False
        assert result.value is None
        assert result.warning == "amount_missing"

    @pytest.mark.asyncio
    async def test_missing_currency(self) -> None:
        result = await CurrencyConverter(FakeRateSource({})).convert("10", None, "EUR")
        assert result.converted is False
        assert result.warning == "currency_missing"

    @pytest.mark.asyncio
    async def test_unavailable_rate(self) -> None:
        result = await CurrencyConverter(FakeRateSource({})).convert("10", "CNY", "USD")
        assert result.converted is False
        assert result.warning == "fx_failed:CNY->USD"

    @pytest.mark.asyncio
    async def test_failed_pair_is_memoised(self) -> None:
        source = FakeRateSource({})
        converter = CurrencyConverter(source)

        await converter.convert("10", "CNY", "USD")
        await converter.convert("20", "CNY", "USD")

        assert len(source.calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_source_error_degrades_to_warning(self) -> None:
        converter = CurrencyConverter(FakeRateSource({}, error=RuntimeError("redis down")))
        result = await converter.convert("10", "EUR", "USD")
        assert result.converted is False
        assert result.warning == "fx_failed:EUR->USD"
