"""Amount normalizer — coerce raw source fields into typed, nullable values.

None of these functions raise: unusable input becomes ``None`` and the caller
decides whether that is acceptable.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from landed_cost.modules.economics.constants import MONEY_QUANT


def to_positive_integer(value: object) -> int | None:
    """Return ``value`` as an int when it is a whole number greater than zero."""
    if value is None or isinstance(value, bool):
        return None
    number = to_decimal_or_null(value)
    if number is None or number != number.to_integral_value() or number <= 0:
        return None
    return int(number)


def to_trimmed_string_or_null(value: object) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def to_decimal_or_null(value: object) -> Decimal | None:
    """Parse a number, accepting a comma or a dot as decimal separator."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        number = Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def to_currency_code(value: object) -> str | None:
    """Trim, upper-case and cut to three characters; no ISO validation."""
    s = str(value or "").strip().upper()
    return s[:3] if s else None


def to_country_code(value: object) -> str | None:
    s = str(value or "").strip().upper()
    return s[:2] if s else None


def quantize_money(value: Decimal) -> Decimal:
    """Round to 4 places, half away from zero."""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
