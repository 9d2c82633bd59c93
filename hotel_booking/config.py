"""
Application settings.

Values are read from environment variables (or a local ``.env`` file).
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the hotel booking backend."""

    APP_NAME: str = "Hotel Booking Backend"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./hotel_booking.db"

    # JWT
    SECRET_KEY: str = "CHANGE_THIS_SECRET_IN_REAL_PROJECT"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Rate limiting (slowapi syntax, e.g. "60/minute")
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "60/minute"

    # Payments
    STRIPE_SECRET_KEY: Optional[str] = None
    PAYMENT_CURRENCY: str = "usd"
    PAYMENT_BREAKER_FAIL_MAX: int = 3
    PAYMENT_BREAKER_RESET_TIMEOUT: int = 60

    # Cancellation policy
    CANCELLATION_WINDOW_HOURS: int = 24

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
