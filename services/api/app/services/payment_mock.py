from __future__ import annotations

import logging
from uuid import uuid4

from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentStatusV1
from services.api.app.services.errors import PaymentDeclinedError
from services.api.app.services.payment_base import ChargeResult

logger = logging.getLogger(__name__)


class MockPaymentProcessor:
    """Always approves. Cash on delivery stays pending until the courier collects."""

    name = "MOCK"

    def charge(self, method: PaymentMethodV1, amount_cents: int) -> ChargeResult:
        del amount_cents

        if method == PaymentMethodV1.CASH_ON_DELIVERY:
            return ChargeResult(
                transaction_id=f"COD-{uuid4().hex[:12]}",
                status=PaymentStatusV1.PENDING,
            )

        return ChargeResult(
            transaction_id=f"TXN-{method.value.upper()}-{uuid4().hex[:12]}",
            status=PaymentStatusV1.COMPLETED,
        )

    def void(self, charge: ChargeResult) -> None:
        logger.info("voided mock charge %s", charge.transaction_id)


class DecliningPaymentProcessor(MockPaymentProcessor):
    """Declines every prepaid charge; useful for exercising the failure path."""

    name = "DECLINE"

    def charge(self, method: PaymentMethodV1, amount_cents: int) -> ChargeResult:
        if method == PaymentMethodV1.CASH_ON_DELIVERY:
            return super().charge(method, amount_cents)
        raise PaymentDeclinedError(method.value)
