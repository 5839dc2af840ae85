from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentStatusV1


@dataclass(frozen=True, slots=True)
class ChargeResult:
    transaction_id: str
    status: PaymentStatusV1


class PaymentProcessor(Protocol):
    name: str

    def charge(self, method: PaymentMethodV1, amount_cents: int) -> ChargeResult:
        """Charge amount_cents; raise PaymentDeclinedError when the charge is refused."""
        ...

    def void(self, charge: ChargeResult) -> None:
        """Reverse a charge whose order could not be saved."""
        ...
