"""Unit tests for pure order pricing (no database)."""

from decimal import Decimal

import pytest
from libs.common.errors import InvalidInput
from services.commerce_service.models import AdjustmentType
from services.commerce_service.services.pricing import (
    Adjustment,
    compute_totals,
    line_total,
    shipping_cost_for,
    to_money,
)

RATES = {
    "standard": Decimal("5.99"),
    "express": Decimal("12.99"),
    "overnight": Decimal("24.99"),
    "pickup": Decimal("0"),
}
EIGHT_PERCENT = Adjustment(Decimal("8"), AdjustmentType.PERCENTAGE)


@pytest.mark.unit
def test_reference_order_totals_113_99():
    """Subtotal 100, 8% tax, standard shipping, no discount."""
    totals = compute_totals(
        [Decimal("100")], tax=EIGHT_PERCENT, shipping_cost=RATES["standard"]
    )

    assert totals.subtotal == Decimal("100.00")
    assert totals.tax_amount == Decimal("8.00")
    assert totals.discount_amount == Decimal("0.00")
    assert totals.total == Decimal("113.99")


@pytest.mark.unit
@pytest.mark.parametrize(
    "method,expected",
    [
        ("standard", "5.99"),
        ("express", "12.99"),
        ("overnight", "24.99"),
        ("pickup", "0.00"),
        ("teleport", "5.99"),
        (None, "5.99"),
    ],
)
def test_shipping_cost_lookup(method, expected):
    assert shipping_cost_for(method, RATES) == Decimal(expected)


@pytest.mark.unit
@pytest.mark.parametrize(
    "lines,discount,shipping",
    [
        (["19.99", "0.01"], Adjustment(Decimal("10")), "12.99"),
        (["3.33", "3.33", "3.34"], Adjustment(Decimal("5"), AdjustmentType.FIXED), "0"),
        (["1234.56"], Adjustment(Decimal("12.5")), "24.99"),
        (["0.05"], Adjustment(Decimal("50")), "5.99"),
    ],
)
def test_total_is_exact_sum_of_parts(lines, discount, shipping):
    totals = compute_totals(
        [Decimal(x) for x in lines],
        tax=EIGHT_PERCENT,
        discount=discount,
        shipping_cost=Decimal(shipping),
    )

    assert totals.total == (
        totals.subtotal
        + totals.tax_amount
        + totals.shipping_cost
        - totals.discount_amount
    )
    assert totals.total == to_money(totals.total)


@pytest.mark.unit
def test_fixed_discount_never_exceeds_subtotal():
    totals = compute_totals(
        [Decimal("20")],
        discount=Adjustment(Decimal("50"), AdjustmentType.FIXED),
        shipping_cost=Decimal("5.99"),
    )

    assert totals.discount_amount == Decimal("20.00")
    assert totals.total == Decimal("5.99")


@pytest.mark.unit
def test_tax_rounds_half_up_to_cents():
    # 8% of 0.0625 = 0.005 -> rounds up to 0.01
    totals = compute_totals([Decimal("0.0625")], tax=EIGHT_PERCENT)
    assert totals.subtotal == Decimal("0.06")
    assert EIGHT_PERCENT.amount_for(Decimal("0.0625")) == Decimal("0.01")


@pytest.mark.unit
def test_line_total_multiplies_price_snapshot():
    assert line_total(Decimal("19.99"), 3) == Decimal("59.97")


@pytest.mark.unit
def test_line_total_rejects_zero_quantity():
    with pytest.raises(InvalidInput):
        line_total(Decimal("1.00"), 0)


@pytest.mark.unit
def test_negative_adjustment_rejected():
    with pytest.raises(InvalidInput):
        Adjustment(Decimal("-1"))
