from __future__ import annotations

import os

from services.api.app.services.payment_base import PaymentProcessor
from services.api.app.services.payment_mock import (
    DecliningPaymentProcessor,
    MockPaymentProcessor,
)


def get_payment_processor() -> PaymentProcessor:
    """Select a processor based on STOREFRONT_PAYMENT_PROCESSOR.

    Defaults to the approving mock; there is no real gateway behind this service.
    """

    mode = os.getenv("STOREFRONT_PAYMENT_PROCESSOR", "mock").strip().lower()

    if mode == "mock":
        return MockPaymentProcessor()

    if mode == "decline":
        return DecliningPaymentProcessor()

    raise ValueError(
        f"Unknown STOREFRONT_PAYMENT_PROCESSOR={mode!r}. Expected mock or decline."
    )
