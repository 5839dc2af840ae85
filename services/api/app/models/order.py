from __future__ import annotations

from decimal import Decimal

from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentStatusV1
from pydantic import BaseModel, Field


class LineItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    image: str = ""
    unit_price_cents: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class PricingIn(BaseModel):
    # None falls back to STOREFRONT_TAX_RATE.
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    distance_km: Decimal = Field(default=Decimal("0"), ge=0)
    weight_kg: Decimal | None = Field(default=None, ge=0)
    coupon_code: str | None = None


class ShippingAddress(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    company: str | None = Field(default=None, max_length=100)
    address_line1: str = Field(..., min_length=1, max_length=200)
    address_line2: str | None = Field(default=None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=20)


class PaymentInfoIn(BaseModel):
    method: PaymentMethodV1
    transaction_id: str | None = None
    status: PaymentStatusV1 = PaymentStatusV1.PENDING


class OrderCreateRequest(BaseModel):
    user_id: str
    # Emptiness is checked by the lifecycle so it surfaces as a 400, like other order rules.
    items: list[LineItemIn]
    shipping_address: ShippingAddress
    payment: PaymentInfoIn
    pricing: PricingIn = Field(default_factory=PricingIn)
    order_notes: str | None = None


class CheckoutOrderRequest(BaseModel):
    """Place an order and let the payment processor charge it."""

    user_id: str
    items: list[LineItemIn]
    shipping_address: ShippingAddress
    payment_method: PaymentMethodV1
    pricing: PricingIn = Field(default_factory=PricingIn)
    order_notes: str | None = None


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatusV1
    note: str = ""
    tracking_number: str | None = None


class OrderCancelRequest(BaseModel):
    user_id: str | None = None
    reason: str | None = None


class OrderRefundRequest(BaseModel):
    reason: str = ""


class PriceBreakdownOut(BaseModel):
    items_total_cents: int
    tax_cents: int
    shipping_cents: int
    discount_cents: int
    total_cents: int


class LineItemOut(BaseModel):
    product_id: str
    name: str
    image: str
    unit_price_cents: int
    quantity: int
    line_total_cents: int


class StatusHistoryOut(BaseModel):
    status: OrderStatusV1
    note: str
    timestamp: str


class PaymentInfoOut(BaseModel):
    method: PaymentMethodV1
    transaction_id: str | None = None
    status: PaymentStatusV1
    amount_cents: int
    paid_at: str | None = None


class OrderSummary(BaseModel):
    id: str
    order_number: str
    status: OrderStatusV1
    total_cents: int
    item_count: int
    created_at: str
    estimated_delivery_at: str | None = None


class OrderDetail(OrderSummary):
    user_id: str
    items: list[LineItemOut]
    breakdown: PriceBreakdownOut
    shipping_address: dict
    payment: PaymentInfoOut
    status_history: list[StatusHistoryOut]
    order_notes: str | None = None
    tracking_number: str | None = None
    actual_delivery_at: str | None = None
    updated_at: str

    can_be_cancelled: bool
    can_be_returned: bool


class OrderListResponse(BaseModel):
    count: int
    total_orders: int
    current_page: int
    total_pages: int
    orders: list[OrderSummary] = Field(default_factory=list)


class OrderStats(BaseModel):
    total_orders: int = 0
    total_revenue_cents: int = 0
    average_order_value_cents: int = 0


class AdminOrderListResponse(OrderListResponse):
    stats: OrderStats


class WindowStats(BaseModel):
    orders: int = 0
    revenue_cents: int = 0


class OrderStatsResponse(BaseModel):
    total: OrderStats
    monthly: WindowStats
    weekly: WindowStats
    by_status: dict[str, int] = Field(default_factory=dict)
