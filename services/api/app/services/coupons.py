from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from services.api.app.services.errors import CouponMinimumNotMetError, InvalidCouponError

CouponType = Literal["percentage", "fixed"]


@dataclass(frozen=True, slots=True)
class Coupon:
    code: str
    type: CouponType
    # Percent for "percentage" coupons, cents for "fixed" ones.
    value: int
    minimum_cents: int


# Static table until a coupon service exists.
COUPONS: dict[str, Coupon] = {
    "SAVE10": Coupon(code="SAVE10", type="percentage", value=10, minimum_cents=5000),
    "FLAT20": Coupon(code="FLAT20", type="fixed", value=2000, minimum_cents=10000),
    "NEWUSER": Coupon(code="NEWUSER", type="percentage", value=15, minimum_cents=3000),
}


def get_coupon(code: str) -> Coupon:
    coupon = COUPONS.get(code.strip().upper())
    if coupon is None:
        raise InvalidCouponError(code)
    return coupon


def coupon_discount_cents(code: str, items_total_cents: int) -> int:
    coupon = get_coupon(code)
    if items_total_cents < coupon.minimum_cents:
        raise CouponMinimumNotMetError(coupon.code, coupon.minimum_cents)

    if coupon.type == "fixed":
        return coupon.value

    discount = Decimal(items_total_cents) * Decimal(coupon.value) / Decimal(100)
    return int(discount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
