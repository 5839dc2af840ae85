from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from packages.shared.schemas.order_v1 import PaymentStatusV1
from services.api.app.services.payment_base import ChargeResult


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "storefront_checkout.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "mock")
    monkeypatch.delenv("STOREFRONT_TAX_RATE", raising=False)

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


ITEMS = [
    {"product_id": "p-1", "name": "Mug", "unit_price_cents": 2000, "quantity": 2},
    {"product_id": "p-2", "name": "Coaster", "unit_price_cents": 500, "quantity": 3},
]

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_line1": "12 Analytical Row",
    "city": "London",
    "state": "Greater London",
    "postal_code": "NW1 6XE",
    "country": "UK",
}


def _checkout(client: TestClient, method: str = "credit_card", **overrides):
    payload = {
        "user_id": "u-1",
        "items": ITEMS,
        "shipping_address": ADDRESS,
        "payment_method": method,
        "pricing": {"tax_rate": "0.10", "distance_km": 10, "weight_kg": 2},
    }
    payload.update(overrides)
    return client.post("/api/checkout/create-order", json=payload)


def test_quote_matches_order_pricing(client: TestClient) -> None:
    resp = client.post(
        "/api/checkout/quote",
        json={"items": ITEMS, "pricing": {"tax_rate": "0.10", "distance_km": 10, "weight_kg": 2}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["item_count"] == 2
    assert data["breakdown"]["total_cents"] == 7050


def test_quote_for_empty_cart_charges_default_shipping(client: TestClient) -> None:
    resp = client.post("/api/checkout/quote", json={})
    assert resp.status_code == 200
    breakdown = resp.json()["breakdown"]
    assert breakdown["items_total_cents"] == 0
    assert breakdown["shipping_cents"] == 700
    assert breakdown["total_cents"] == 700


def test_quote_with_coupon(client: TestClient) -> None:
    pricing = {"tax_rate": "0.10", "distance_km": 10, "weight_kg": 2, "coupon_code": " save10"}
    resp = client.post("/api/checkout/quote", json={"items": ITEMS, "pricing": pricing})
    assert resp.status_code == 200
    data = resp.json()
    assert data["coupon_code"] == "SAVE10"
    assert data["breakdown"]["discount_cents"] == 550
    assert data["breakdown"]["total_cents"] == 6500


def test_quote_uses_configured_tax_rate(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STOREFRONT_TAX_RATE", "0.05")
    resp = client.post("/api/checkout/quote", json={"items": ITEMS})
    assert resp.json()["breakdown"]["tax_cents"] == 275


def test_apply_coupon(client: TestClient) -> None:
    resp = client.post(
        "/api/checkout/apply-coupon", json={"coupon_code": "flat20", "items_total_cents": 12_000}
    )
    assert resp.status_code == 200
    assert resp.json() == {"code": "FLAT20", "type": "fixed", "value": 2000, "discount_cents": 2000}


@pytest.mark.parametrize(
    ("code", "total", "message"),
    [
        ("BOGUS", 10_000, "Invalid coupon code"),
        ("SAVE10", 4999, "$50.00"),
    ],
)
def test_apply_coupon_rejections(client: TestClient, code: str, total: int, message: str) -> None:
    resp = client.post(
        "/api/checkout/apply-coupon", json={"coupon_code": code, "items_total_cents": total}
    )
    assert resp.status_code == 400
    assert message in resp.json()["detail"]


def test_payment_methods(client: TestClient) -> None:
    resp = client.get("/api/checkout/payment-methods")
    assert resp.status_code == 200
    ids = [m["id"] for m in resp.json()]
    assert ids == ["credit_card", "debit_card", "paypal", "stripe", "cash_on_delivery"]
    assert all(m["enabled"] for m in resp.json())


def test_create_order_charges_card(client: TestClient) -> None:
    resp = _checkout(client)
    assert resp.status_code == 201, resp.text
    data = resp.json()

    assert data["total_cents"] == 7050
    assert data["payment"]["transaction_id"].startswith("TXN-CREDIT_CARD-")
    assert data["payment"]["status"] == "completed"
    assert data["payment"]["paid_at"]

    events = client.get(f"/api/orders/{data['id']}/events").json()
    assert [e["event_type"] for e in events] == ["ORDER_CREATED", "PAYMENT_PROCESSED"]
    assert events[1]["payload"]["processor"] == "MOCK"


def test_create_order_cash_on_delivery_stays_pending(client: TestClient) -> None:
    resp = _checkout(client, method="cash_on_delivery")
    assert resp.status_code == 201
    payment = resp.json()["payment"]
    assert payment["transaction_id"].startswith("COD-")
    assert payment["status"] == "pending"
    assert payment["paid_at"] is None


def test_create_order_rejects_empty_cart(client: TestClient) -> None:
    resp = _checkout(client, items=[])
    assert resp.status_code == 400


def test_declined_payment_saves_nothing(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "decline")

    resp = _checkout(client)
    assert resp.status_code == 402
    assert "declined" in resp.json()["detail"]

    listed = client.get("/api/orders", params={"user_id": "u-1"}).json()
    assert listed["total_orders"] == 0


def test_unknown_processor_is_a_server_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "stripe-live")
    resp = _checkout(client)
    assert resp.status_code == 500
    assert "STOREFRONT_PAYMENT_PROCESSOR" in resp.json()["detail"]


class _RecordingProcessor:
    name = "RECORDING"

    def __init__(self) -> None:
        self.charges: list[int] = []
        self.voided: list[str] = []

    def charge(self, method, amount_cents: int) -> ChargeResult:
        self.charges.append(amount_cents)
        return ChargeResult(
            transaction_id=f"REC-{len(self.charges)}", status=PaymentStatusV1.COMPLETED
        )

    def void(self, charge) -> None:
        self.voided.append(charge.transaction_id)


@pytest.fixture()
def recorder(monkeypatch: pytest.MonkeyPatch) -> _RecordingProcessor:
    from services.api.app.routers import checkout

    processor = _RecordingProcessor()
    monkeypatch.setattr(checkout, "get_payment_processor", lambda: processor)
    return processor


def test_invalid_order_is_rejected_before_charging(
    client: TestClient, recorder: _RecordingProcessor
) -> None:
    resp = _checkout(client, order_notes="x" * 600)

    assert resp.status_code == 400
    assert "order_notes" in resp.json()["detail"]
    assert recorder.charges == []


def test_charge_is_voided_when_order_cannot_be_saved(
    client: TestClient, recorder: _RecordingProcessor, monkeypatch: pytest.MonkeyPatch
) -> None:
    from services.api.app.db.deps import get_lifecycle
    from services.api.app.main import app
    from services.api.app.services.lifecycle import OrderLifecycle

    class _SameNumber:
        def generate(self, now) -> str:
            del now
            return "ORD-20260101-00007"

    monkeypatch.setenv("STOREFRONT_ORDER_NUMBER_ATTEMPTS", "1")
    app.dependency_overrides[get_lifecycle] = lambda: OrderLifecycle(number_generator=_SameNumber())
    try:
        assert _checkout(client).status_code == 201
        resp = _checkout(client)
    finally:
        app.dependency_overrides.pop(get_lifecycle, None)

    assert resp.status_code == 409
    assert recorder.charges == [7050, 7050]
    assert recorder.voided == ["REC-2"]
    listed = client.get("/api/orders", params={"user_id": "u-1"}).json()
    assert listed["total_orders"] == 1
