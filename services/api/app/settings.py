from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation

# Values are read on every call so tests can override them with monkeypatch.setenv.

_TRUTHY = {"1", "true", "yes", "y"}


def env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, "").strip() or default
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a decimal number, got {raw!r}") from e
    if not value.is_finite():
        raise ValueError(f"{name} must be a finite number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {raw!r}")
    return value


def tax_rate() -> Decimal:
    return env_decimal("STOREFRONT_TAX_RATE", "0.10")


def return_window_days() -> int:
    return env_int("STOREFRONT_RETURN_WINDOW_DAYS", 30)


def delivery_days() -> int:
    return env_int("STOREFRONT_DELIVERY_DAYS", 7)


def order_number_attempts() -> int:
    return env_int("STOREFRONT_ORDER_NUMBER_ATTEMPTS", 5, minimum=1)


def log_level() -> str:
    return os.getenv("STOREFRONT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
