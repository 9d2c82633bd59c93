"""
Unit tests for payment processing.
"""
from decimal import Decimal

import pytest
from pybreaker import CircuitBreaker

from conftest import FakeGateway
from hotel_booking.errors import PaymentGatewayError, ValidationError
from hotel_booking.models import PaymentMethod, PaymentStatus
from hotel_booking.services.payments import PaymentProcessor, StripeGateway, to_cents


def get_auth_header(token: str) -> dict:
    """Helper function to create authorization header."""
    return {"Authorization": f"Bearer {token}"}


def make_processor(gateway, fail_max=3):
    return PaymentProcessor(gateway, currency="usd", breaker=CircuitBreaker(fail_max=fail_max, reset_timeout=60))


class TestPaymentProcessor:
    """Tests for PaymentProcessor.charge per method."""

    def test_card_success(self):
        gateway = FakeGateway()
        result = make_processor(gateway).charge(PaymentMethod.CREDIT_CARD, Decimal("120.50"), "tok_visa")

        assert result.status == PaymentStatus.COMPLETED
        assert result.transaction_id == "ch_test_1"
        assert result.receipt_url is not None
        assert gateway.calls[0]["amount"] == 12050
        assert gateway.calls[0]["currency"] == "usd"
        assert gateway.calls[0]["source"] == "tok_visa"

    def test_card_declined(self):
        result = make_processor(FakeGateway("failed")).charge(PaymentMethod.CREDIT_CARD, 100, "tok_visa")
        assert result.status == PaymentStatus.FAILED

    def test_card_requires_token(self):
        gateway = FakeGateway()
        with pytest.raises(ValidationError):
            make_processor(gateway).charge(PaymentMethod.CREDIT_CARD, 100)
        assert gateway.calls == []

    def test_gateway_error_wrapped(self):
        with pytest.raises(PaymentGatewayError):
            make_processor(FakeGateway("error")).charge(PaymentMethod.CREDIT_CARD, 100, "tok_visa")

    def test_paypal_completed(self):
        gateway = FakeGateway()
        result = make_processor(gateway).charge(PaymentMethod.PAYPAL, 100)
        assert result.status == PaymentStatus.COMPLETED
        assert result.transaction_id.startswith("PP_")
        assert gateway.calls == []

    def test_cash_pending(self):
        result = make_processor(FakeGateway()).charge("cash", 100)
        assert result.status == PaymentStatus.PENDING
        assert result.transaction_id.startswith("CASH_")
        assert len(result.transaction_id) == len("CASH_") + 13

    def test_to_cents(self):
        assert to_cents(Decimal("99.99")) == 9999
        assert to_cents("10") == 1000


class TestCircuitBreaker:
    """Tests for the gateway circuit breaker."""

    def test_open_circuit_skips_gateway(self):
        gateway = FakeGateway("error")
        processor = make_processor(gateway, fail_max=2)

        for _ in range(2):
            with pytest.raises(PaymentGatewayError):
                processor.charge(PaymentMethod.CREDIT_CARD, 100, "tok_visa")
        assert processor.breaker.current_state == "open"

        with pytest.raises(PaymentGatewayError) as exc_info:
            processor.charge(PaymentMethod.CREDIT_CARD, 100, "tok_visa")
        assert "temporarily unavailable" in exc_info.value.message
        assert len(gateway.calls) == 2

    def test_cash_unaffected_by_open_circuit(self):
        processor = make_processor(FakeGateway("error"), fail_max=1)
        with pytest.raises(PaymentGatewayError):
            processor.charge(PaymentMethod.CREDIT_CARD, 100, "tok_visa")

        assert processor.charge(PaymentMethod.CASH, 100).status == PaymentStatus.PENDING


class TestStripeGateway:
    """Tests for the Stripe adapter that need no network."""

    def test_missing_key(self):
        with pytest.raises(PaymentGatewayError):
            StripeGateway(None).charge(1000, "usd", "tok_visa", "Hotel booking")


class TestPaymentMethodsEndpoint:
    """Tests for GET /payments/methods."""

    def test_list_methods(self, client):
        response = client.get("/payments/methods")
        assert response.status_code == 200
        ids = [method["id"] for method in response.json()]
        assert ids == ["credit_card", "paypal", "cash"]


class TestPayEndpoint:
    """Tests for POST /payments/."""

    def test_pay_with_paypal_confirms(self, client, unpaid_booking, regular_token):
        response = client.post(
            "/payments/",
            headers=get_auth_header(regular_token),
            json={"booking_id": unpaid_booking.id, "method_payment": "paypal", "total_payment": "300.00"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["payment_status"] == "completed"
        assert float(data["total_payment"]) == 300.0

        booking = client.get(f"/bookings/{unpaid_booking.id}", headers=get_auth_header(regular_token))
        assert booking.json()["booking_status"] == "confirmed"

    def test_pay_with_card(self, client, unpaid_booking, regular_token, gateway):
        response = client.post(
            "/payments/",
            headers=get_auth_header(regular_token),
            json={
                "booking_id": unpaid_booking.id,
                "method_payment": "credit_card",
                "total_payment": "300.00",
                "source_token": "tok_visa",
            },
        )
        assert response.status_code == 200
        assert response.json()["transaction_id"] == "ch_test_1"
        assert gateway.calls[0]["amount"] == 30000

    def test_pay_gateway_down(self, client, db_session, unpaid_booking, regular_token, gateway):
        gateway.outcome = "error"
        response = client.post(
            "/payments/",
            headers=get_auth_header(regular_token),
            json={
                "booking_id": unpaid_booking.id,
                "method_payment": "credit_card",
                "total_payment": "300.00",
                "source_token": "tok_visa",
            },
        )
        assert response.status_code == 502
        assert response.json()["error"] == "payment_gateway_error"
        db_session.refresh(unpaid_booking)
        assert unpaid_booking.payment is None

    def test_pay_twice(self, client, sample_booking, regular_token):
        response = client.post(
            "/payments/",
            headers=get_auth_header(regular_token),
            json={"booking_id": sample_booking.id, "method_payment": "cash", "total_payment": "300.00"},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Booking already has a payment"

    def test_pay_for_someone_else(self, client, unpaid_booking, other_token):
        response = client.post(
            "/payments/",
            headers=get_auth_header(other_token),
            json={"booking_id": unpaid_booking.id, "method_payment": "cash", "total_payment": "300.00"},
        )
        assert response.status_code == 403

    def test_admin_cannot_pay_for_guest(self, client, unpaid_booking, admin_token):
        response = client.post(
            "/payments/",
            headers=get_auth_header(admin_token),
            json={"booking_id": unpaid_booking.id, "method_payment": "cash", "total_payment": "300.00"},
        )
        assert response.status_code == 403
