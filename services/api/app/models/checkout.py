from __future__ import annotations

from packages.shared.schemas.order_v1 import PaymentMethodV1
from pydantic import BaseModel, Field
from services.api.app.models.order import LineItemIn, PriceBreakdownOut, PricingIn


class QuoteRequest(BaseModel):
    items: list[LineItemIn] = Field(default_factory=list)
    pricing: PricingIn = Field(default_factory=PricingIn)


class QuoteResponse(BaseModel):
    breakdown: PriceBreakdownOut
    item_count: int
    coupon_code: str | None = None


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(..., min_length=3, max_length=20)
    items_total_cents: int = Field(..., ge=0)


class ApplyCouponResponse(BaseModel):
    code: str
    type: str
    value: int
    discount_cents: int


class PaymentMethodOut(BaseModel):
    id: PaymentMethodV1
    name: str
    description: str
    enabled: bool = True
