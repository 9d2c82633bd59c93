"""
Payment processing.

Card payments go through an external gateway; PayPal and cash are settled
locally. The gateway sits behind ``PaymentGateway`` so it can be swapped for
a fake in tests.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import stripe
from pybreaker import CircuitBreaker, CircuitBreakerError

from ..circuit_breaker import payment_gateway_breaker
from ..config import settings
from ..errors import HotelError, PaymentGatewayError, ValidationError
from ..models import PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)

PAYMENT_METHODS = [
    {
        "id": PaymentMethod.CREDIT_CARD.value,
        "name": "Credit Card",
        "description": "Pay securely with your credit card",
        "requires_additional_info": True,
    },
    {
        "id": PaymentMethod.PAYPAL.value,
        "name": "PayPal",
        "description": "Pay with your PayPal account",
        "requires_additional_info": False,
    },
    {
        "id": PaymentMethod.CASH.value,
        "name": "Cash",
        "description": "Pay in cash at check-in",
        "requires_additional_info": False,
    },
]

_TRANSACTION_PREFIX = {
    PaymentMethod.CREDIT_CARD: "CC",
    PaymentMethod.PAYPAL: "PP",
    PaymentMethod.CASH: "CASH",
}


@dataclass
class GatewayCharge:
    id: str
    status: str
    receipt_url: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass
class ChargeResult:
    transaction_id: str
    status: PaymentStatus
    receipt_url: Optional[str] = None


class PaymentGateway:
    """External charge capability."""

    def charge(self, amount_cents: int, currency: str, source: str, description: str) -> GatewayCharge:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def charge(self, amount_cents: int, currency: str, source: str, description: str) -> GatewayCharge:
        if not self.api_key:
            raise PaymentGatewayError("Stripe secret key missing (STRIPE_SECRET_KEY)")
        try:
            charge = stripe.Charge.create(
                amount=amount_cents,
                currency=currency,
                source=source,
                description=description,
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise PaymentGatewayError(f"Payment failed: {exc.user_message or exc}") from exc
        return GatewayCharge(
            id=charge["id"],
            status=charge["status"],
            receipt_url=charge.get("receipt_url"),
        )


def to_cents(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))


def _transaction_id(method: PaymentMethod) -> str:
    return f"{_TRANSACTION_PREFIX[method]}_{uuid.uuid4().hex[:13]}"


class PaymentProcessor:
    def __init__(
        self,
        gateway: PaymentGateway,
        currency: str = None,
        breaker: CircuitBreaker = payment_gateway_breaker,
    ):
        self.gateway = gateway
        self.currency = currency or settings.PAYMENT_CURRENCY
        self.breaker = breaker

    def validate(self, method: PaymentMethod, source_token: Optional[str]) -> None:
        """Reject requests that cannot be charged, before anything is written."""
        if method == PaymentMethod.CREDIT_CARD and not source_token:
            raise ValidationError("A payment source token is required for credit card payments")

    def charge(
        self,
        method: PaymentMethod,
        amount,
        source_token: Optional[str] = None,
        description: str = "Hotel booking",
    ) -> ChargeResult:
        """
        Settle ``amount`` with the given method.

        Raises
        ------
        ValidationError
            Card payment without a source token.
        PaymentGatewayError
            The gateway failed or the circuit is open.
        """
        method = PaymentMethod(method)
        self.validate(method, source_token)

        if method == PaymentMethod.CREDIT_CARD:
            return self._charge_card(amount, source_token, description)

        if method == PaymentMethod.PAYPAL:
            # placeholder until the redirect flow exists
            return ChargeResult(transaction_id=_transaction_id(method), status=PaymentStatus.COMPLETED)

        # cash waits for a manual confirmation
        return ChargeResult(transaction_id=_transaction_id(method), status=PaymentStatus.PENDING)

    def _charge_card(self, amount, source_token: str, description: str) -> ChargeResult:
        try:
            charge = self.breaker.call(
                self.gateway.charge, to_cents(amount), self.currency, source_token, description
            )
        except CircuitBreakerError as exc:
            logger.warning("Payment gateway circuit open: %s", exc)
            raise PaymentGatewayError(
                "Payment gateway temporarily unavailable. Please try again later."
            ) from exc
        except HotelError:
            raise
        except Exception as exc:
            logger.warning("Payment gateway call failed: %s", exc)
            raise PaymentGatewayError(f"Payment failed: {exc}") from exc

        status = PaymentStatus.COMPLETED if charge.succeeded else PaymentStatus.FAILED
        logger.info("Card charge %s finished with status %s", charge.id, status.value)
        return ChargeResult(transaction_id=charge.id, status=status, receipt_url=charge.receipt_url)
