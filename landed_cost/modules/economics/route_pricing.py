"""Route pricing calculator — logistics amount for one shipment group on one tariff.

Missing inputs never raise: they come back as an ``error`` or ``warning``
status with a message that callers persist verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal

from landed_cost.models.enums import CalcStatus, PricingModel
from landed_cost.modules.economics.normalizer import quantize_money, to_decimal_or_null


@dataclass(frozen=True)
class RouteAmount:
    ok: bool
    status: CalcStatus
    message: str | None
    amount: Decimal | None


@dataclass(frozen=True)
class ChargeableMeasures:
    weight_kg: Decimal | None
    volume_cbm: Decimal | None


def _error(message: str) -> RouteAmount:
    return RouteAmount(ok=False, status=CalcStatus.ERROR, message=message, amount=None)


def _product(measure: Decimal | None, rate: Decimal | None) -> Decimal | None:
    if measure is None or rate is None:
        return None
    return measure * rate


def calc_route_amount(
    model: object,
    fixed_cost: object = None,
    rate_per_kg: object = None,
    rate_per_cbm: object = None,
    min_cost: object = None,
    markup_pct: object = None,
    markup_fixed: object = None,
    weight_kg: object = None,
    volume_cbm: object = None,
) -> RouteAmount:
    """Price a shipment under one of the ``PricingModel`` tariffs.

    The base amount is computed per model, then
    ``base * (1 + markup_pct / 100) + markup_fixed`` is rounded to 4 places.
    """
    try:
        pricing_model = PricingModel(str(model or "").strip().lower())
    except ValueError:
        return _error(f"Unknown pricing model: {model!r}")

    fixed = to_decimal_or_null(fixed_cost)
    minimum = to_decimal_or_null(min_cost) or Decimal(0)
    weight = to_decimal_or_null(weight_kg)
    volume = to_decimal_or_null(volume_cbm)
    weight_cost = _product(weight, to_decimal_or_null(rate_per_kg))
    volume_cost = _product(volume, to_decimal_or_null(rate_per_cbm))

    status = CalcStatus.OK
    message: str | None = None

    if pricing_model is PricingModel.FIXED:
        if fixed is None:
            return _error("fixed model requires fixed_cost")
        base = fixed

    elif pricing_model is PricingModel.PER_KG:
        if weight_cost is None:
            return _error("per_kg model requires weight_kg and rate_per_kg")
        base = max(weight_cost, minimum)

    elif pricing_model is PricingModel.PER_CBM:
        if volume_cost is None:
            return _error("per_cbm model requires volume_cbm and rate_per_cbm")
        base = max(volume_cost, minimum)

    elif pricing_model is PricingModel.PER_KG_OR_CBM_MAX:
        if weight_cost is None and volume_cost is None:
            return _error("per_kg_or_cbm_max model requires weight or volume with a matching rate")
        if weight_cost is None or volume_cost is None:
            status = CalcStatus.WARNING
            message = "priced on one side only: " + ("volume" if weight_cost is None else "weight")
        base = max(weight_cost or Decimal(0), volume_cost or Decimal(0), minimum)

    else:  # hybrid
        if fixed is None and weight_cost is None and volume_cost is None:
            return _error("hybrid model requires fixed_cost, weight or volume")
        missing = [
            label
            for label, value in (("weight", weight_cost), ("volume", volume_cost))
            if value is None
        ]
        if missing:
            status = CalcStatus.WARNING
            message = "missing variable inputs: " + ", ".join(missing)
        base = (fixed or Decimal(0)) + max(
            weight_cost or Decimal(0), volume_cost or Decimal(0), minimum
        )

    pct = to_decimal_or_null(markup_pct) or Decimal(0)
    extra = to_decimal_or_null(markup_fixed) or Decimal(0)
    amount = quantize_money(base * (1 + pct / 100) + extra)
    return RouteAmount(ok=True, status=status, message=message, amount=amount)


def _round_up(value: Decimal | None, step: Decimal | None) -> Decimal | None:
    if value is None or step is None or step <= 0:
        return value
    return (value / step).to_integral_value(rounding=ROUND_CEILING) * step


def chargeable_measures(
    model: object,
    weight_kg: object,
    volume_cbm: object,
    *,
    round_step_kg: object = None,
    round_step_cbm: object = None,
    volumetric_kg_per_cbm: object = None,
) -> ChargeableMeasures:
    """Apply a template's volumetric factor and round-up steps to raw measures.

    The volumetric factor only affects the ``per_kg`` model: chargeable weight
    becomes ``max(actual, volume * factor)``.
    """
    weight = to_decimal_or_null(weight_kg)
    volume = to_decimal_or_null(volume_cbm)
    factor = to_decimal_or_null(volumetric_kg_per_cbm)

    if str(model or "").strip().lower() == PricingModel.PER_KG.value and factor and volume is not None:
        volumetric = volume * factor
        weight = volumetric if weight is None else max(weight, volumetric)

    return ChargeableMeasures(
        weight_kg=_round_up(weight, to_decimal_or_null(round_step_kg)),
        volume_cbm=_round_up(volume, to_decimal_or_null(round_step_cbm)),
    )
