"""
Domain error types.

Core services raise these instead of HTTP exceptions; the handlers in
``error_handlers`` turn them into JSON responses.
"""
from typing import Any, Optional


class HotelError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(HotelError):
    kind = "validation_error"
    status_code = 422


class NotFoundError(HotelError):
    kind = "not_found"
    status_code = 404


class AuthorizationError(HotelError):
    kind = "forbidden"
    status_code = 403


class ConflictError(HotelError):
    kind = "conflict"
    status_code = 422


class PaymentGatewayError(HotelError):
    kind = "payment_gateway_error"
    status_code = 502


class TransactionError(HotelError):
    kind = "transaction_error"
    status_code = 500
