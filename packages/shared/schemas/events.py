"""Shared event schema (v1).

The backend stores an append-only event log next to each order's status history. Clients can
consume these events to render an audit trail.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    ORDER = "Order"


class EventTypeV1(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_REFUNDED = "ORDER_REFUNDED"
    PAYMENT_PROCESSED = "PAYMENT_PROCESSED"


class EventV1(BaseModel):
    id: str
    user_id: str | None = None

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
