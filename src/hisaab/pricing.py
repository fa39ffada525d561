"""Trade price and discount derivation for invoice line items."""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

from hisaab.models import LineItem

TRADE_MARGIN = Decimal("0.145")
DISCOUNT_BASE_MARGIN = Decimal("0.15")

_CENT = Decimal("0.01")
_ZERO = Decimal("0")


class NegativeInputPolicy(str, Enum):
    """How negative quantity/rate entries are priced."""

    PROPAGATE = "propagate"
    CLAMP = "clamp"


@dataclass(frozen=True)
class PricingResult:
    """Computed pricing for a single invoice row."""

    trade_price: float
    effective_unit_price: float
    line_total: float


def coerce_number(value: Any) -> float:
    """Convert user input to a finite float, falling back to 0."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _to_decimal(value: float) -> Decimal:
    return Decimal(repr(value))


def _round2(value: Decimal) -> float:
    try:
        rounded = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # beyond context precision cents are not representable anyway
        rounded = value
    # `or 0.0` folds -0.0 into 0.0
    return float(rounded) or 0.0


def compute_pricing(
    *,
    quantity: Any,
    rate: Any,
    discount_percent: Any,
    negative_inputs: NegativeInputPolicy = NegativeInputPolicy.PROPAGATE,
) -> PricingResult:
    """
    Derive trade price, effective unit price and line total.

    The trade price is the rate less a fixed 14.5% margin. A non-zero
    discount first takes a further fixed 15% off the trade price and then
    applies the signed percentage to that base. Intermediate values stay
    unrounded; each output is rounded half-up to cents on its own.
    """
    qty = coerce_number(quantity)
    unit_rate = coerce_number(rate)
    discount = coerce_number(discount_percent)

    if negative_inputs == NegativeInputPolicy.CLAMP:
        qty = max(qty, 0.0)
        unit_rate = max(unit_rate, 0.0)

    rate_dec = _to_decimal(unit_rate)
    trade = rate_dec * (1 - TRADE_MARGIN) if rate_dec > 0 else _ZERO

    if discount == 0:
        effective = trade
    else:
        base = trade * (1 - DISCOUNT_BASE_MARGIN)
        effective = base + base * (_to_decimal(discount) / 100)

    total = effective * _to_decimal(qty)

    return PricingResult(
        trade_price=_round2(trade),
        effective_unit_price=_round2(effective),
        line_total=_round2(total),
    )


def derive_item(
    item: LineItem,
    *,
    negative_inputs: NegativeInputPolicy = NegativeInputPolicy.PROPAGATE,
) -> LineItem:
    """Return a copy of ``item`` with derived fields matching its raw fields."""
    pricing = compute_pricing(
        quantity=item.quantity,
        rate=item.rate,
        discount_percent=item.discount_percent,
        negative_inputs=negative_inputs,
    )
    return item.model_copy(
        update={
            "quantity": coerce_number(item.quantity),
            "rate": coerce_number(item.rate),
            "discount_percent": coerce_number(item.discount_percent),
            "trade_price": pricing.trade_price,
            "effective_unit_price": pricing.effective_unit_price,
            "line_total": pricing.line_total,
        }
    )


def sum_amounts(values: Iterable[float]) -> float:
    """Sum currency amounts without binary floating point drift."""
    total = sum((_to_decimal(coerce_number(v)) for v in values), _ZERO)
    return float(total) or 0.0
