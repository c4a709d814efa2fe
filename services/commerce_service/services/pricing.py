"""Deterministic order pricing.

All money is ``Decimal`` quantized to cents. The total is the exact sum of
its quantized parts, so ``total == subtotal + tax + shipping - discount``
holds with no rounding drift.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Union

from libs.common.errors import InvalidInput
from services.commerce_service.models.enums import AdjustmentType

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, float, int, str]


def to_money(value: Number) -> Decimal:
    """Coerce ``value`` to a cent-quantized Decimal (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Adjustment:
    """A tax or discount rule: a percentage of the subtotal or a flat amount."""

    value: Decimal = ZERO
    type: AdjustmentType = AdjustmentType.PERCENTAGE

    def __post_init__(self):
        value = Decimal(str(self.value))
        if value < 0:
            raise InvalidInput("Adjustment value cannot be negative")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "type", AdjustmentType(self.type))

    def amount_for(self, base: Decimal) -> Decimal:
        if self.type == AdjustmentType.PERCENTAGE:
            return to_money(base * self.value / HUNDRED)
        return to_money(self.value)


NO_ADJUSTMENT = Adjustment()


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total: Decimal


def line_total(price: Number, quantity: int) -> Decimal:
    if quantity < 1:
        raise InvalidInput("Quantity must be at least 1")
    return to_money(to_money(price) * quantity)


def shipping_cost_for(
    method: Optional[str],
    rates: Mapping[str, Number],
    default_method: str = "standard",
) -> Decimal:
    """Look up the flat shipping cost; unknown or missing methods use the default's."""
    key = getattr(method, "value", method)
    if key in rates:
        return to_money(rates[key])
    return to_money(rates[default_method])


def compute_totals(
    line_totals: Iterable[Number],
    tax: Adjustment = NO_ADJUSTMENT,
    discount: Adjustment = NO_ADJUSTMENT,
    shipping_cost: Number = ZERO,
) -> OrderTotals:
    subtotal = to_money(sum((to_money(t) for t in line_totals), ZERO))
    tax_amount = tax.amount_for(subtotal)
    # A discount never takes more than the goods are worth
    discount_amount = min(discount.amount_for(subtotal), subtotal)
    shipping = to_money(shipping_cost)
    total = subtotal + tax_amount + shipping - discount_amount
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        shipping_cost=shipping,
        total=total,
    )
