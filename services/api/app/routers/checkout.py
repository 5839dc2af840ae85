from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.events import EventTypeV1
from packages.shared.schemas.order_v1 import PaymentMethodV1
from services.api.app.db.deps import get_lifecycle, get_order_store
from services.api.app.models.checkout import (
    ApplyCouponRequest,
    ApplyCouponResponse,
    PaymentMethodOut,
    QuoteRequest,
    QuoteResponse,
)
from services.api.app.models.order import CheckoutOrderRequest, OrderDetail, PriceBreakdownOut
from services.api.app.routers.order import raise_order_http_error
from services.api.app.services.coupons import coupon_discount_cents, get_coupon
from services.api.app.services.errors import PaymentDeclinedError
from services.api.app.services.lifecycle import OrderLifecycle, PaymentInput
from services.api.app.services.order_store import OrderStore
from services.api.app.services.payment_factory import get_payment_processor
from services.api.app.services.placement import place_order, pricing_context, to_line_items
from services.api.app.services.pricing import quote

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkout")

_PAYMENT_METHODS: list[PaymentMethodOut] = [
    PaymentMethodOut(
        id=PaymentMethodV1.CREDIT_CARD,
        name="Credit Card",
        description="Visa, MasterCard, American Express",
    ),
    PaymentMethodOut(
        id=PaymentMethodV1.DEBIT_CARD,
        name="Debit Card",
        description="All major debit cards accepted",
    ),
    PaymentMethodOut(
        id=PaymentMethodV1.PAYPAL,
        name="PayPal",
        description="Pay securely with your PayPal account",
    ),
    PaymentMethodOut(
        id=PaymentMethodV1.STRIPE,
        name="Stripe",
        description="Secure payment processing",
    ),
    PaymentMethodOut(
        id=PaymentMethodV1.CASH_ON_DELIVERY,
        name="Cash on Delivery",
        description="Pay when your order is delivered",
    ),
]


@router.post("/quote", response_model=QuoteResponse)
def quote_cart(payload: QuoteRequest) -> QuoteResponse:
    items = to_line_items(payload.items)
    try:
        context = pricing_context(payload.pricing, items)
    except Exception as e:
        raise_order_http_error(e)

    breakdown = quote(
        items,
        tax_rate=context.tax_rate,
        distance_km=context.distance_km,
        weight_kg=context.weight_kg,
        discount_cents=context.discount_cents,
    )
    return QuoteResponse(
        breakdown=PriceBreakdownOut(
            items_total_cents=breakdown.items_total_cents,
            tax_cents=breakdown.tax_cents,
            shipping_cents=breakdown.shipping_cents,
            discount_cents=breakdown.discount_cents,
            total_cents=breakdown.total_cents,
        ),
        item_count=len(items),
        coupon_code=(
            payload.pricing.coupon_code.strip().upper() if payload.pricing.coupon_code else None
        ),
    )


@router.post("/apply-coupon", response_model=ApplyCouponResponse)
def apply_coupon(payload: ApplyCouponRequest) -> ApplyCouponResponse:
    try:
        coupon = get_coupon(payload.coupon_code)
        discount = coupon_discount_cents(coupon.code, payload.items_total_cents)
    except Exception as e:
        raise_order_http_error(e)

    return ApplyCouponResponse(
        code=coupon.code,
        type=coupon.type,
        value=coupon.value,
        discount_cents=discount,
    )


@router.get("/payment-methods", response_model=list[PaymentMethodOut])
def list_payment_methods() -> list[PaymentMethodOut]:
    return _PAYMENT_METHODS


@router.post("/create-order", response_model=OrderDetail, status_code=201)
def checkout_create_order(
    payload: CheckoutOrderRequest,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    try:
        processor = get_payment_processor()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    items = to_line_items(payload.items)
    try:
        lifecycle.validate_cart(items, payload.order_notes)
        context = pricing_context(payload.pricing, items)
        amount = quote(
            items,
            tax_rate=context.tax_rate,
            distance_km=context.distance_km,
            weight_kg=context.weight_kg,
            discount_cents=context.discount_cents,
        ).total_cents
        charge = processor.charge(payload.payment_method, amount)
    except PaymentDeclinedError as e:
        logger.warning("payment declined for user %s: %s", payload.user_id, e)
        raise_order_http_error(e)
    except Exception as e:
        raise_order_http_error(e)

    try:
        order = place_order(
            store,
            lifecycle,
            user_id=payload.user_id,
            items=items,
            shipping_address=payload.shipping_address,
            payment=PaymentInput(
                method=payload.payment_method,
                transaction_id=charge.transaction_id,
                status=charge.status,
            ),
            pricing=payload.pricing,
            order_notes=payload.order_notes,
        )
        store.log_event(
            order=order,
            user_id=payload.user_id,
            event_type=EventTypeV1.PAYMENT_PROCESSED,
            payload={"processor": processor.name, "payment_status": charge.status.value},
        )
        store.db.commit()
    except Exception as e:
        # Charged but not saved.
        logger.warning("voiding charge %s: order not saved (%s)", charge.transaction_id, e)
        processor.void(charge)
        raise_order_http_error(e)

    return lifecycle.detail(order)
