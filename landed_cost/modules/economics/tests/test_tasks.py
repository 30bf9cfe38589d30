"""Tests for the FX preload background task."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from landed_cost.modules.economics.line_options import EconomicsViews, FxPreloadReport
from landed_cost.modules.economics.tasks import _preload_fx_rates_async

LINE_OPTIONS = "landed_cost.modules.economics.line_options.LineOptionService"


class _SessionContext:
    def __init__(self, session) -> None:
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *exc_info) -> bool:
        return False


def _session() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


class TestPreloadFxRates:
    @pytest.mark.asyncio
    async def test_preloads_needed_pairs(self) -> None:
        session = _session()
        report = FxPreloadReport(target_currency="USD", requested=["EUR", "CNY"], failed=["CNY"])

        with patch(
            "landed_cost.modules.economics.tasks.async_session",
            MagicMock(return_value=_SessionContext(session)),
        ), patch(
            f"{LINE_OPTIONS}.pick_views",
            AsyncMock(return_value=EconomicsViews("vw_rfq_economics_line_options_norm", None)),
        ), patch(f"{LINE_OPTIONS}.preload_fx_rates", AsyncMock(return_value=report)) as preload:
            result = await _preload_fx_rates_async(1, "usd")

        assert result == {
            "rfq_id": 1,
            "target_currency": "USD",
            "requested": ["EUR", "CNY"],
            "failed": ["CNY"],
        }
        assert preload.await_args.kwargs["target_currency_hint"] == "usd"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_without_line_view(self) -> None:
        session = _session()

        with patch(
            "landed_cost.modules.economics.tasks.async_session",
            MagicMock(return_value=_SessionContext(session)),
        ), patch(f"{LINE_OPTIONS}.pick_views", AsyncMock(return_value=EconomicsViews(None, None))):
            result = await _preload_fx_rates_async(1, None)

        assert result["requested"] == []
        assert result["target_currency"] is None
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self) -> None:
        session = _session()

        with patch(
            "landed_cost.modules.economics.tasks.async_session",
            MagicMock(return_value=_SessionContext(session)),
        ), patch(f"{LINE_OPTIONS}.pick_views", AsyncMock(side_effect=RuntimeError("db down"))):
            with pytest.raises(RuntimeError, match="db down"):
                await _preload_fx_rates_async(1, None)

        session.rollback.assert_awaited_once()
