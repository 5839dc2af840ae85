from __future__ import annotations


class OrderError(Exception):
    """Base class for order domain errors."""


class OrderValidationError(OrderError):
    def __init__(self, problems: list[str]) -> None:
        super().__init__("Order validation failed: " + "; ".join(problems))
        self.problems = problems


class OrderNotFoundError(OrderError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class OrderConflictError(OrderError):
    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order number already exists: {order_number}")
        self.order_number = order_number


class IllegalTransitionError(OrderError):
    def __init__(self, current: str, requested: str, reason: str = "") -> None:
        message = f"Cannot move order from {current} to {requested}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.requested = requested


class OrderNotCancellableError(OrderError):
    def __init__(self, status: str) -> None:
        super().__init__(f"Order cannot be cancelled at this stage (status={status})")
        self.status = status


class CouponError(OrderError):
    """Base class for coupon rejections."""


class InvalidCouponError(CouponError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Invalid coupon code: {code}")
        self.code = code


class CouponMinimumNotMetError(CouponError):
    def __init__(self, code: str, minimum_cents: int) -> None:
        super().__init__(
            f"Minimum order amount of ${minimum_cents / 100:.2f} required for coupon {code}"
        )
        self.code = code
        self.minimum_cents = minimum_cents


class PaymentDeclinedError(OrderError):
    def __init__(self, method: str, reason: str = "Payment declined by bank") -> None:
        super().__init__(f"{reason} (method={method})")
        self.method = method
        self.reason = reason
