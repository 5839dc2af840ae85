from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.models import EventLog, Order
from services.api.app.services.errors import OrderConflictError, OrderNotFoundError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Page:
    orders: list[Order]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True, slots=True)
class Aggregate:
    count: int
    revenue_cents: int

    @property
    def average_cents(self) -> int:
        return round(self.revenue_cents / self.count) if self.count else 0


class OrderStore:
    """Order persistence on top of a SQLAlchemy session.

    The store flushes but never commits; the request handler owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, order: Order) -> Order:
        try:
            # Savepoint: a collision undoes only this insert, not earlier work in the transaction.
            # The order (and its items) goes back to transient so the caller can renumber it.
            with self.db.begin_nested():
                self.db.add(order)
                self.db.flush()
        except IntegrityError as e:
            logger.warning("order number collision on %s", order.order_number)
            raise OrderConflictError(order.order_number) from e
        return order

    def get(self, order_id: str) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_for_user(self, user_id: str, *, page: int = 1, limit: int = 10) -> Page:
        return self._page([Order.user_id == user_id], page=page, limit=limit)

    def list_all(
        self,
        *,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Page, Aggregate]:
        filters = _filters(status=status, start=start, end=end)
        return self._page(filters, page=page, limit=limit), self._aggregate(filters)

    def stats(self, now: datetime) -> dict:
        by_status_rows = self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        ).all()
        return {
            "total": self._aggregate([]),
            "monthly": self._aggregate([Order.created_at >= now - timedelta(days=30)]),
            "weekly": self._aggregate([Order.created_at >= now - timedelta(days=7)]),
            "by_status": {status: count for status, count in by_status_rows},
        }

    def log_event(
        self,
        *,
        order: Order,
        event_type: EventTypeV1,
        payload: dict,
        user_id: str | None = None,
    ) -> None:
        self.db.add(
            EventLog(
                id=uuid4().hex,
                user_id=user_id,
                entity_type=EntityTypeV1.ORDER.value,
                entity_id=order.id,
                event_type=event_type.value,
                event_payload_json=payload,
            )
        )

    def events_for(self, order_id: str) -> list[EventLog]:
        return list(
            self.db.scalars(
                select(EventLog)
                .where(
                    EventLog.entity_type == EntityTypeV1.ORDER.value,
                    EventLog.entity_id == order_id,
                )
                .order_by(EventLog.created_at.asc())
            )
        )

    def _page(self, filters: list, *, page: int, limit: int) -> Page:
        page = max(1, page)
        total = self.db.scalar(select(func.count(Order.id)).where(*filters)) or 0
        orders = list(
            self.db.scalars(
                select(Order)
                .where(*filters)
                .order_by(Order.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        )
        return Page(orders=orders, total=total, page=page, limit=limit)

    def _aggregate(self, filters: list) -> Aggregate:
        count, revenue = self.db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_cents), 0)).where(
                *filters
            )
        ).one()
        return Aggregate(count=count, revenue_cents=int(revenue))


def _filters(*, status: str | None, start: datetime | None, end: datetime | None) -> list:
    out: list = []
    if status:
        out.append(Order.status == status)
    if start is not None:
        out.append(Order.created_at >= start)
    if end is not None:
        out.append(Order.created_at <= end)
    return out
