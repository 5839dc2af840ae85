"""Shared order enums (v1).

Clients render status badges and payment choices from these values, so they must stay stable once
shipped.
"""

from __future__ import annotations

from enum import Enum


class OrderStatusV1(str, Enum):
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentMethodV1(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    RAZORPAY = "razorpay"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatusV1(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
