from __future__ import annotations

import logging
from collections.abc import Sequence

from packages.shared.schemas.events import EventTypeV1
from services.api.app import settings
from services.api.app.db.models import Order
from services.api.app.models.order import LineItemIn, PricingIn, ShippingAddress
from services.api.app.services.coupons import coupon_discount_cents
from services.api.app.services.errors import OrderConflictError
from services.api.app.services.lifecycle import OrderLifecycle, PaymentInput, PricingContext
from services.api.app.services.order_store import OrderStore
from services.api.app.services.pricing import LineItem, items_total_cents

logger = logging.getLogger(__name__)


def to_line_items(items: Sequence[LineItemIn]) -> list[LineItem]:
    return [
        LineItem(
            product_id=item.product_id,
            name=item.name,
            image=item.image,
            unit_price_cents=item.unit_price_cents,
            quantity=item.quantity,
        )
        for item in items
    ]


def pricing_context(pricing: PricingIn, items: Sequence[LineItem]) -> PricingContext:
    discount = 0
    if pricing.coupon_code:
        discount = coupon_discount_cents(pricing.coupon_code, items_total_cents(items))

    return PricingContext(
        tax_rate=pricing.tax_rate if pricing.tax_rate is not None else settings.tax_rate(),
        distance_km=pricing.distance_km,
        weight_kg=pricing.weight_kg,
        discount_cents=discount,
    )


def place_order(
    store: OrderStore,
    lifecycle: OrderLifecycle,
    *,
    user_id: str,
    items: Sequence[LineItem],
    shipping_address: ShippingAddress,
    payment: PaymentInput,
    pricing: PricingIn,
    order_notes: str | None = None,
) -> Order:
    """Create and flush a new order, drawing a new order number on collision.

    The caller commits. Gives up with OrderConflictError after STOREFRONT_ORDER_NUMBER_ATTEMPTS.
    """

    order = lifecycle.create(
        user_id=user_id,
        items=items,
        shipping_address=shipping_address,
        payment=payment,
        pricing=pricing_context(pricing, items),
        order_notes=order_notes,
    )

    attempts = settings.order_number_attempts()
    for attempt in range(1, attempts + 1):
        try:
            store.add(order)
            break
        except OrderConflictError:
            if attempt == attempts:
                raise
            lifecycle.regenerate_order_number(order)

    store.log_event(
        order=order,
        user_id=user_id,
        event_type=EventTypeV1.ORDER_CREATED,
        payload={
            "order_number": order.order_number,
            "total_cents": order.total_cents,
            "item_count": len(order.items),
            "payment_method": order.payment_method,
        },
    )
    logger.info(
        "order %s created for user %s (total_cents=%s)",
        order.order_number,
        user_id,
        order.total_cents,
    )
    return order
