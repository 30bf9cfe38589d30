"""Currency conversion that degrades to warnings instead of raising."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from landed_cost.exceptions import FxRateUnavailableError
from landed_cost.modules.economics.constants import (
    WARNING_AMOUNT_MISSING,
    WARNING_CURRENCY_MISSING,
    WARNING_FX_FAILED,
)
from landed_cost.modules.economics.normalizer import (
    quantize_money,
    to_currency_code,
    to_decimal_or_null,
)

logger = logging.getLogger(__name__)


class RateSource(Protocol):
    async def get_rate(self, base_raw: object, quote_raw: object, *, force_refresh: bool = False): ...


@dataclass(frozen=True)
class Conversion:
    value: Decimal | None
    converted: bool
    rate: Decimal | None = None
    warning: str | None = None


class CurrencyConverter:
    """Converts amounts through a rate source, memoising rates per currency pair.

    One converter is meant to live for one operation (a recalculation, a
    preload); failed pairs are memoised too so a missing rate is only
    requested once.
    """

    def __init__(self, rate_source: RateSource, *, force_refresh: bool = False) -> None:
        self.rate_source = rate_source
        self.force_refresh = force_refresh
        self._rates: dict[tuple[str, str], Decimal | None] = {}

    async def convert(
        self,
        amount: object,
        from_currency: object,
        to_currency: object,
    ) -> Conversion:
        value = to_decimal_or_null(amount)
        if value is None:
            return Conversion(value=None, converted=False, warning=WARNING_AMOUNT_MISSING)

        base = to_currency_code(from_currency)
        quote = to_currency_code(to_currency)
        if not base or not quote:
            return Conversion(value=None, converted=False, warning=WARNING_CURRENCY_MISSING)

        if base == quote:
            return Conversion(value=value, converted=True, rate=Decimal("1"))

        rate = await self._rate(base, quote)
        if rate is None:
            return Conversion(
                value=None,
                converted=False,
                warning=WARNING_FX_FAILED.format(base=base, quote=quote),
            )
        return Conversion(value=quantize_money(value * rate), converted=True, rate=rate)

    async def _rate(self, base: str, quote: str) -> Decimal | None:
        key = (base, quote)
        if key in self._rates:
            return self._rates[key]
        try:
            quote_obj = await self.rate_source.get_rate(
                base, quote, force_refresh=self.force_refresh
            )
            rate = Decimal(str(quote_obj.rate))
        except FxRateUnavailableError as exc:
            logger.warning("Conversion %s->%s failed: %s", base, quote, exc.reason)
            rate = None
        except Exception as exc:
            logger.warning("Conversion %s->%s failed: %r", base, quote, exc)
            rate = None
        self._rates[key] = rate
        return rate
