import pytest
from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentStatusV1
from services.api.app.services.errors import PaymentDeclinedError
from services.api.app.services.payment_factory import get_payment_processor


def test_get_payment_processor_defaults_to_mock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STOREFRONT_PAYMENT_PROCESSOR", raising=False)
    processor = get_payment_processor()
    assert processor.name == "MOCK"


def test_get_payment_processor_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "nope")
    with pytest.raises(ValueError, match="Unknown STOREFRONT_PAYMENT_PROCESSOR"):
        get_payment_processor()


def test_mock_processor_completes_card_payments(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "mock")
    result = get_payment_processor().charge(PaymentMethodV1.STRIPE, 1234)
    assert result.status == PaymentStatusV1.COMPLETED
    assert result.transaction_id.startswith("TXN-STRIPE-")


def test_mock_processor_leaves_cash_on_delivery_pending(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "mock")
    result = get_payment_processor().charge(PaymentMethodV1.CASH_ON_DELIVERY, 1234)
    assert result.status == PaymentStatusV1.PENDING
    assert result.transaction_id.startswith("COD-")


def test_declining_processor_refuses_cards(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "decline")
    processor = get_payment_processor()

    with pytest.raises(PaymentDeclinedError):
        processor.charge(PaymentMethodV1.CREDIT_CARD, 500)
    assert processor.charge(PaymentMethodV1.CASH_ON_DELIVERY, 500).status == "pending"


def test_mock_processor_void_accepts_its_own_charge(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_PAYMENT_PROCESSOR", "mock")
    processor = get_payment_processor()
    charge = processor.charge(PaymentMethodV1.PAYPAL, 999)
    assert processor.void(charge) is None
