"""Checkout pricing.

Every function here is pure: no clock, no database, no environment. Amounts are integer cents and
rates are decimals; rounding is half-up to the cent.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_TAX_RATE = Decimal("0.10")

SHIPPING_BASE_RATE = Decimal("5")
SHIPPING_DISTANCE_RATE = Decimal("0.1")  # per km
SHIPPING_WEIGHT_RATE = Decimal("2")  # per kg
DEFAULT_WEIGHT_KG = Decimal("1")

_CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    image: str = ""

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    items_total_cents: int
    tax_cents: int
    shipping_cents: int
    discount_cents: int
    total_cents: int


def _to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary expansion.
    return Decimal(str(value))


def _dollars_to_cents(amount: Decimal) -> int:
    return int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def items_total_cents(items: Iterable[LineItem]) -> int:
    return sum((item.line_total_cents for item in items), 0)


def tax_cents(items_total: int, tax_rate: Decimal | float | None = None) -> int:
    rate = DEFAULT_TAX_RATE if tax_rate is None else _to_decimal(tax_rate)
    return int((Decimal(items_total) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def shipping_cents(
    distance_km: Decimal | float | int = 0,
    weight_kg: Decimal | float | int | None = None,
) -> int:
    """Flat cost model: base + distance * rate + weight * rate.

    This is not a carrier lookup. The base rate applies even to an empty cart.
    """

    weight = DEFAULT_WEIGHT_KG if weight_kg is None else _to_decimal(weight_kg)
    dollars = (
        SHIPPING_BASE_RATE
        + _to_decimal(distance_km) * SHIPPING_DISTANCE_RATE
        + weight * SHIPPING_WEIGHT_RATE
    )
    return _dollars_to_cents(dollars)


def total_cents(items_total: int, tax: int, shipping: int, discount: int) -> int:
    return max(0, items_total + tax + shipping - discount)


def quote(
    items: Iterable[LineItem],
    *,
    tax_rate: Decimal | float | None = None,
    distance_km: Decimal | float | int = 0,
    weight_kg: Decimal | float | int | None = None,
    discount_cents: int = 0,
) -> PriceBreakdown:
    items_total = items_total_cents(items)
    tax = tax_cents(items_total, tax_rate)
    shipping = shipping_cents(distance_km, weight_kg)

    # A discount larger than the bill is capped so total == items + tax + shipping - discount.
    discount = min(max(0, discount_cents), items_total + tax + shipping)

    return PriceBreakdown(
        items_total_cents=items_total,
        tax_cents=tax,
        shipping_cents=shipping,
        discount_cents=discount,
        total_cents=total_cents(items_total, tax, shipping, discount),
    )
