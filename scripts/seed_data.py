from __future__ import annotations

import argparse
import random
from decimal import Decimal

from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentStatusV1
from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.models.order import PricingIn, ShippingAddress
from services.api.app.services.lifecycle import OrderLifecycle, PaymentInput
from services.api.app.services.order_store import OrderStore
from services.api.app.services.placement import place_order
from services.api.app.services.pricing import LineItem

CATALOG = (
    ("p-mug", "Stoneware Mug", 1800),
    ("p-lamp", "Desk Lamp", 4599),
    ("p-tea", "Loose Leaf Tea", 1250),
    ("p-notebook", "Dot Grid Notebook", 900),
    ("p-kettle", "Gooseneck Kettle", 7900),
)

ADDRESS = ShippingAddress(
    first_name="Demo",
    last_name="Customer",
    address_line1="1 Sample Street",
    city="Springfield",
    state="OR",
    postal_code="97477",
    country="US",
)


def _cart(rng: random.Random) -> list[LineItem]:
    picks = rng.sample(CATALOG, k=rng.randint(1, 3))
    return [
        LineItem(product_id=pid, name=name, unit_price_cents=price, quantity=rng.randint(1, 3))
        for pid, name, price in picks
    ]


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo storefront orders")
    parser.add_argument("--user-id", default="u-1")
    parser.add_argument("--count", type=int, default=6)
    parser.add_argument("--seed", type=int, default=42, help="seed for the cart mix")
    args = parser.parse_args()

    init_db()
    rng = random.Random(args.seed)
    lifecycle = OrderLifecycle.from_env()

    db = db_session()
    try:
        store = OrderStore(db)
        created: list[str] = []
        for i in range(args.count):
            prepaid = i % 2 == 0
            method = PaymentMethodV1.CREDIT_CARD if prepaid else PaymentMethodV1.CASH_ON_DELIVERY
            order = place_order(
                store,
                lifecycle,
                user_id=args.user_id,
                items=_cart(rng),
                shipping_address=ADDRESS,
                payment=PaymentInput(
                    method=method,
                    transaction_id=f"SEED-{i:04d}" if prepaid else None,
                    status=PaymentStatusV1.COMPLETED if prepaid else PaymentStatusV1.PENDING,
                ),
                pricing=PricingIn(distance_km=Decimal(rng.randint(1, 40))),
            )

            if i % 3 == 2:
                for status in (
                    OrderStatusV1.CONFIRMED,
                    OrderStatusV1.SHIPPED,
                    OrderStatusV1.DELIVERED,
                ):
                    lifecycle.update_status(order, status, "seeded")
            elif i % 4 == 3:
                lifecycle.cancel(order, "seeded cancellation")

            created.append(order.order_number)

        db.commit()
        print(f"Seeded {len(created)} orders for user={args.user_id}: {', '.join(created)}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
