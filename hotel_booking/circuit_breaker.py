from pybreaker import CircuitBreaker

from .config import settings

# Guards calls to the external payment gateway
payment_gateway_breaker = CircuitBreaker(
    fail_max=settings.PAYMENT_BREAKER_FAIL_MAX,
    reset_timeout=settings.PAYMENT_BREAKER_RESET_TIMEOUT,
    name="payment_gateway_breaker",
)
