"""Order creation and status workflow.

Orders move forward through processing -> confirmed -> shipped -> out_for_delivery -> delivered.
Forward skips are allowed (an admin may mark a processing order delivered). Cancellation is only
possible before shipping, and a return only from delivered inside the return window. delivered
leads nowhere else; cancelled and returned are final.

The clock and the order-number source are injected so tests can pin both.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Protocol
from uuid import uuid4

from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentStatusV1
from services.api.app import settings
from services.api.app.db.models import Order, OrderItem, OrderStatusEntry
from services.api.app.models.order import (
    LineItemOut,
    OrderDetail,
    OrderSummary,
    PaymentInfoOut,
    PriceBreakdownOut,
    ShippingAddress,
    StatusHistoryOut,
)
from services.api.app.services.errors import (
    IllegalTransitionError,
    OrderNotCancellableError,
    OrderValidationError,
)
from services.api.app.services.pricing import LineItem, PriceBreakdown, quote

logger = logging.getLogger(__name__)

ORDER_PLACED_NOTE = "Order placed successfully"
MAX_ORDER_NOTES_LENGTH = 500

CANCELLABLE_STATUSES = frozenset({OrderStatusV1.PROCESSING, OrderStatusV1.CONFIRMED})

ALLOWED_TRANSITIONS: dict[OrderStatusV1, frozenset[OrderStatusV1]] = {
    OrderStatusV1.PROCESSING: frozenset(
        {
            OrderStatusV1.CONFIRMED,
            OrderStatusV1.SHIPPED,
            OrderStatusV1.OUT_FOR_DELIVERY,
            OrderStatusV1.DELIVERED,
            OrderStatusV1.CANCELLED,
        }
    ),
    OrderStatusV1.CONFIRMED: frozenset(
        {
            OrderStatusV1.SHIPPED,
            OrderStatusV1.OUT_FOR_DELIVERY,
            OrderStatusV1.DELIVERED,
            OrderStatusV1.CANCELLED,
        }
    ),
    OrderStatusV1.SHIPPED: frozenset({OrderStatusV1.OUT_FOR_DELIVERY, OrderStatusV1.DELIVERED}),
    OrderStatusV1.OUT_FOR_DELIVERY: frozenset({OrderStatusV1.DELIVERED}),
    OrderStatusV1.DELIVERED: frozenset({OrderStatusV1.RETURNED}),
    OrderStatusV1.CANCELLED: frozenset(),
    OrderStatusV1.RETURNED: frozenset(),
}


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Naive UTC wall clock, matching what the database stores."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderNumberGenerator(Protocol):
    def generate(self, now: datetime) -> str: ...


class RandomOrderNumberGenerator:
    """ORD-YYYYMMDD-NNNNN with a random five-digit suffix.

    Collisions are possible (100k values per day); the store reports them as OrderConflictError
    and the caller regenerates.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()

    def generate(self, now: datetime) -> str:
        return f"ORD-{now:%Y%m%d}-{self._rng.randrange(100_000):05d}"


@dataclass(frozen=True, slots=True)
class PaymentInput:
    method: PaymentMethodV1 | str
    transaction_id: str | None = None
    status: PaymentStatusV1 = PaymentStatusV1.PENDING


@dataclass(frozen=True, slots=True)
class PricingContext:
    tax_rate: Decimal | float | None = None
    distance_km: Decimal | float = 0
    weight_kg: Decimal | float | None = None
    discount_cents: int = 0


class OrderLifecycle:
    def __init__(
        self,
        clock: Clock | None = None,
        number_generator: OrderNumberGenerator | None = None,
        *,
        return_window: timedelta = timedelta(days=30),
        delivery_lead: timedelta = timedelta(days=7),
    ) -> None:
        self.clock = clock or SystemClock()
        self.number_generator = number_generator or RandomOrderNumberGenerator()
        self.return_window = return_window
        self.delivery_lead = delivery_lead

    @classmethod
    def from_env(cls) -> OrderLifecycle:
        return cls(
            return_window=timedelta(days=settings.return_window_days()),
            delivery_lead=timedelta(days=settings.delivery_days()),
        )

    # -- creation -----------------------------------------------------------------------------

    def validate_cart(self, items: Sequence[LineItem], order_notes: str | None = None) -> None:
        """Everything create() checks except the payment, for callers that charge first."""

        problems = _cart_problems(items, order_notes)
        if problems:
            raise OrderValidationError(problems)

    def validate(
        self,
        items: Sequence[LineItem],
        payment: PaymentInput,
        order_notes: str | None = None,
    ) -> PaymentMethodV1:
        problems = _cart_problems(items, order_notes)

        method: PaymentMethodV1 | None = None
        try:
            method = PaymentMethodV1(payment.method)
        except ValueError:
            problems.append(f"unknown payment method: {payment.method!r}")

        if (
            method is not None
            and method != PaymentMethodV1.CASH_ON_DELIVERY
            and not (payment.transaction_id or "").strip()
        ):
            problems.append(f"transaction_id is required for {method.value} payments")

        try:
            PaymentStatusV1(payment.status)
        except ValueError:
            problems.append(f"unknown payment status: {payment.status!r}")

        if problems:
            raise OrderValidationError(problems)

        assert method is not None
        return method

    def create(
        self,
        *,
        user_id: str,
        items: Sequence[LineItem],
        shipping_address: ShippingAddress,
        payment: PaymentInput,
        pricing: PricingContext | None = None,
        order_notes: str | None = None,
    ) -> Order:
        """Build a new, not yet persisted order with its price breakdown frozen in."""

        method = self.validate(items, payment, order_notes)
        pricing = pricing or PricingContext()
        breakdown = quote(
            items,
            tax_rate=pricing.tax_rate,
            distance_km=pricing.distance_km,
            weight_kg=pricing.weight_kg,
            discount_cents=pricing.discount_cents,
        )

        now = self.clock.now()
        payment_status = PaymentStatusV1(payment.status)

        order = Order(
            id=uuid4().hex,
            order_number=self.number_generator.generate(now),
            user_id=user_id,
            status=OrderStatusV1.PROCESSING.value,
            shipping_address_json=shipping_address.model_dump(),
            payment_method=method.value,
            payment_transaction_id=payment.transaction_id,
            payment_status=payment_status.value,
            payment_amount_cents=breakdown.total_cents,
            paid_at=now if payment_status == PaymentStatusV1.COMPLETED else None,
            order_notes=order_notes,
            estimated_delivery_at=now + self.delivery_lead,
            actual_delivery_at=None,
            created_at=now,
            updated_at=now,
        )
        _freeze_breakdown(order, breakdown)

        for position, item in enumerate(items):
            order.items.append(
                OrderItem(
                    id=uuid4().hex,
                    position=position,
                    product_id=item.product_id,
                    name=item.name,
                    image=item.image,
                    unit_price_cents=item.unit_price_cents,
                    quantity=item.quantity,
                )
            )

        self._append_history(order, OrderStatusV1.PROCESSING, ORDER_PLACED_NOTE, now)
        return order

    def regenerate_order_number(self, order: Order) -> str:
        order.order_number = self.number_generator.generate(self.clock.now())
        return order.order_number

    # -- transitions --------------------------------------------------------------------------

    def update_status(
        self,
        order: Order,
        new_status: OrderStatusV1 | str,
        note: str = "",
        *,
        tracking_number: str | None = None,
    ) -> bool:
        """Move the order to new_status. Returns False when it was already there."""

        target = OrderStatusV1(new_status)
        current = OrderStatusV1(order.status)
        now = self.clock.now()

        if target != current:
            if target not in ALLOWED_TRANSITIONS[current]:
                raise IllegalTransitionError(current.value, target.value)
            if target == OrderStatusV1.RETURNED and not self.can_be_returned(order):
                raise IllegalTransitionError(
                    current.value, target.value, "return window has closed"
                )

        if tracking_number:
            order.tracking_number = tracking_number
            order.updated_at = now

        if target == current:
            return False

        order.status = target.value
        order.updated_at = now
        self._append_history(order, target, note, now)

        if target == OrderStatusV1.DELIVERED and order.actual_delivery_at is None:
            order.actual_delivery_at = now
        if target == OrderStatusV1.SHIPPED and order.estimated_delivery_at is None:
            order.estimated_delivery_at = now + self.delivery_lead

        logger.info("order %s: %s -> %s", order.order_number, current.value, target.value)
        return True

    def cancel(self, order: Order, reason: str | None = None) -> None:
        if not self.can_be_cancelled(order):
            raise OrderNotCancellableError(order.status)
        self.update_status(order, OrderStatusV1.CANCELLED, reason or "Cancelled by user")

    def refund(self, order: Order, reason: str = "") -> None:
        current = OrderStatusV1(order.status)
        if current != OrderStatusV1.DELIVERED:
            raise IllegalTransitionError(
                current.value, OrderStatusV1.RETURNED.value, "only delivered orders can be refunded"
            )
        self.update_status(order, OrderStatusV1.RETURNED, f"Refund processed: {reason}")
        order.payment_status = PaymentStatusV1.REFUNDED.value

    # -- queries ------------------------------------------------------------------------------

    def can_be_cancelled(self, order: Order) -> bool:
        return OrderStatusV1(order.status) in CANCELLABLE_STATUSES

    def can_be_returned(self, order: Order) -> bool:
        if OrderStatusV1(order.status) != OrderStatusV1.DELIVERED:
            return False
        if order.actual_delivery_at is None:
            return False
        return order.actual_delivery_at > self.clock.now() - self.return_window

    def summary(self, order: Order) -> OrderSummary:
        return OrderSummary(
            id=order.id,
            order_number=order.order_number,
            status=OrderStatusV1(order.status),
            total_cents=order.total_cents,
            item_count=len(order.items),
            created_at=order.created_at.isoformat(),
            estimated_delivery_at=_iso(order.estimated_delivery_at),
        )

    def detail(self, order: Order) -> OrderDetail:
        breakdown = breakdown_of(order)
        return OrderDetail(
            **self.summary(order).model_dump(),
            user_id=order.user_id,
            items=[
                LineItemOut(
                    product_id=item.product_id,
                    name=item.name,
                    image=item.image,
                    unit_price_cents=item.unit_price_cents,
                    quantity=item.quantity,
                    line_total_cents=item.unit_price_cents * item.quantity,
                )
                for item in order.items
            ],
            breakdown=PriceBreakdownOut(
                items_total_cents=breakdown.items_total_cents,
                tax_cents=breakdown.tax_cents,
                shipping_cents=breakdown.shipping_cents,
                discount_cents=breakdown.discount_cents,
                total_cents=breakdown.total_cents,
            ),
            shipping_address=order.shipping_address_json,
            payment=PaymentInfoOut(
                method=PaymentMethodV1(order.payment_method),
                transaction_id=order.payment_transaction_id,
                status=PaymentStatusV1(order.payment_status),
                amount_cents=order.payment_amount_cents,
                paid_at=_iso(order.paid_at),
            ),
            status_history=[
                StatusHistoryOut(
                    status=OrderStatusV1(entry.status),
                    note=entry.note,
                    timestamp=entry.timestamp.isoformat(),
                )
                for entry in order.status_history
            ],
            order_notes=order.order_notes,
            tracking_number=order.tracking_number,
            actual_delivery_at=_iso(order.actual_delivery_at),
            updated_at=order.updated_at.isoformat(),
            can_be_cancelled=self.can_be_cancelled(order),
            can_be_returned=self.can_be_returned(order),
        )

    def _append_history(
        self, order: Order, status: OrderStatusV1, note: str, timestamp: datetime
    ) -> None:
        order.status_history.append(
            OrderStatusEntry(
                id=uuid4().hex,
                sequence=len(order.status_history),
                status=status.value,
                note=note,
                timestamp=timestamp,
            )
        )


def breakdown_of(order: Order) -> PriceBreakdown:
    return PriceBreakdown(
        items_total_cents=order.items_total_cents,
        tax_cents=order.tax_cents,
        shipping_cents=order.shipping_cents,
        discount_cents=order.discount_cents,
        total_cents=order.total_cents,
    )


def _freeze_breakdown(order: Order, breakdown: PriceBreakdown) -> None:
    order.items_total_cents = breakdown.items_total_cents
    order.tax_cents = breakdown.tax_cents
    order.shipping_cents = breakdown.shipping_cents
    order.discount_cents = breakdown.discount_cents
    order.total_cents = breakdown.total_cents


def _cart_problems(items: Sequence[LineItem], order_notes: str | None) -> list[str]:
    problems: list[str] = []
    if not items:
        problems.append("order must contain at least one line item")
    for index, item in enumerate(items):
        if item.quantity <= 0:
            problems.append(f"items[{index}].quantity must be at least 1")
        if item.unit_price_cents < 0:
            problems.append(f"items[{index}].unit_price_cents cannot be negative")
    if order_notes and len(order_notes) > MAX_ORDER_NOTES_LENGTH:
        problems.append(f"order_notes cannot exceed {MAX_ORDER_NOTES_LENGTH} characters")
    return problems


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
