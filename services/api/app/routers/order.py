from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1, EventV1
from packages.shared.schemas.order_v1 import OrderStatusV1
from services.api.app.db.deps import get_lifecycle, get_order_store
from services.api.app.models.order import (
    AdminOrderListResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderDetail,
    OrderListResponse,
    OrderRefundRequest,
    OrderStats,
    OrderStatsResponse,
    OrderStatusUpdateRequest,
    WindowStats,
)
from services.api.app.services.errors import (
    CouponError,
    IllegalTransitionError,
    OrderConflictError,
    OrderError,
    OrderNotCancellableError,
    OrderNotFoundError,
    OrderValidationError,
    PaymentDeclinedError,
)
from services.api.app.services.lifecycle import OrderLifecycle, PaymentInput
from services.api.app.services.order_store import OrderStore
from services.api.app.services.placement import place_order, to_line_items

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders")


def raise_order_http_error(e: Exception) -> None:
    if isinstance(e, OrderNotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, (OrderValidationError, CouponError, OrderNotCancellableError)):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, PaymentDeclinedError):
        raise HTTPException(status_code=402, detail=str(e)) from e

    if isinstance(e, (IllegalTransitionError, OrderConflictError)):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, OrderError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.exception("unexpected order error")
    raise HTTPException(status_code=500, detail="Internal Server Error") from e


@router.post("", response_model=OrderDetail, status_code=201)
def create_order(
    payload: OrderCreateRequest,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    try:
        order = place_order(
            store,
            lifecycle,
            user_id=payload.user_id,
            items=to_line_items(payload.items),
            shipping_address=payload.shipping_address,
            payment=PaymentInput(
                method=payload.payment.method,
                transaction_id=payload.payment.transaction_id,
                status=payload.payment.status,
            ),
            pricing=payload.pricing,
            order_notes=payload.order_notes,
        )
    except Exception as e:
        raise_order_http_error(e)

    store.db.commit()
    return lifecycle.detail(order)


@router.get("", response_model=OrderListResponse)
def list_user_orders(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderListResponse:
    result = store.list_for_user(user_id, page=page, limit=limit)
    return OrderListResponse(
        count=len(result.orders),
        total_orders=result.total,
        current_page=result.page,
        total_pages=result.total_pages,
        orders=[lifecycle.summary(o) for o in result.orders],
    )


@router.get("/admin/all", response_model=AdminOrderListResponse)
def list_all_orders(
    status: OrderStatusV1 | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> AdminOrderListResponse:
    result, aggregate = store.list_all(
        status=status.value if status else None,
        start=start_date,
        end=end_date,
        page=page,
        limit=limit,
    )
    return AdminOrderListResponse(
        count=len(result.orders),
        total_orders=result.total,
        current_page=result.page,
        total_pages=result.total_pages,
        orders=[lifecycle.summary(o) for o in result.orders],
        stats=OrderStats(
            total_orders=aggregate.count,
            total_revenue_cents=aggregate.revenue_cents,
            average_order_value_cents=aggregate.average_cents,
        ),
    )


@router.get("/admin/stats", response_model=OrderStatsResponse)
def order_stats(
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderStatsResponse:
    stats = store.stats(lifecycle.clock.now())
    total = stats["total"]
    return OrderStatsResponse(
        total=OrderStats(
            total_orders=total.count,
            total_revenue_cents=total.revenue_cents,
            average_order_value_cents=total.average_cents,
        ),
        monthly=WindowStats(
            orders=stats["monthly"].count, revenue_cents=stats["monthly"].revenue_cents
        ),
        weekly=WindowStats(
            orders=stats["weekly"].count, revenue_cents=stats["weekly"].revenue_cents
        ),
        by_status=stats["by_status"],
    )


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: str,
    user_id: str | None = None,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    try:
        order = store.get(order_id)
    except OrderError as e:
        raise_order_http_error(e)

    if user_id is not None and order.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not authorized to view this order")

    return lifecycle.detail(order)


@router.get("/{order_id}/events", response_model=list[EventV1])
def get_order_events(
    order_id: str,
    store: OrderStore = Depends(get_order_store),
) -> list[EventV1]:
    try:
        store.get(order_id)
    except OrderError as e:
        raise_order_http_error(e)

    return [
        EventV1(
            id=ev.id,
            user_id=ev.user_id,
            entity_type=EntityTypeV1(ev.entity_type),
            entity_id=ev.entity_id,
            event_type=EventTypeV1(ev.event_type),
            payload=ev.event_payload_json,
            created_at=ev.created_at.isoformat(),
        )
        for ev in store.events_for(order_id)
    ]


@router.put("/{order_id}/status", response_model=OrderDetail)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    try:
        order = store.get(order_id)
        previous = order.status
        changed = lifecycle.update_status(
            order,
            payload.status,
            payload.note,
            tracking_number=payload.tracking_number,
        )
    except Exception as e:
        raise_order_http_error(e)

    if changed:
        store.log_event(
            order=order,
            event_type=EventTypeV1.ORDER_STATUS_CHANGED,
            payload={"from": previous, "to": order.status, "note": payload.note},
        )

    store.db.commit()
    return lifecycle.detail(order)


@router.put("/{order_id}/cancel", response_model=OrderDetail)
def cancel_order(
    order_id: str,
    payload: OrderCancelRequest | None = None,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    payload = payload or OrderCancelRequest()

    try:
        order = store.get(order_id)
    except OrderError as e:
        raise_order_http_error(e)

    if payload.user_id is not None and order.user_id != payload.user_id:
        raise HTTPException(status_code=403, detail="Not authorized to cancel this order")

    try:
        lifecycle.cancel(order, payload.reason)
    except Exception as e:
        raise_order_http_error(e)

    store.log_event(
        order=order,
        user_id=payload.user_id,
        event_type=EventTypeV1.ORDER_CANCELLED,
        payload={"reason": payload.reason or "Cancelled by user"},
    )
    store.db.commit()
    return lifecycle.detail(order)


@router.post("/{order_id}/refund", response_model=OrderDetail)
def refund_order(
    order_id: str,
    payload: OrderRefundRequest,
    store: OrderStore = Depends(get_order_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
) -> OrderDetail:
    try:
        order = store.get(order_id)
        lifecycle.refund(order, payload.reason)
    except Exception as e:
        raise_order_http_error(e)

    store.log_event(
        order=order,
        event_type=EventTypeV1.ORDER_REFUNDED,
        payload={"reason": payload.reason, "amount_cents": order.payment_amount_cents},
    )
    store.db.commit()
    return lifecycle.detail(order)
