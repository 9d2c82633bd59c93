"""
Cancellation window policy.
"""
import math
from datetime import date, datetime, time
from typing import Union

from ..config import settings

CANCELLATION_POLICY = (
    "Bookings can only be cancelled at least 24 hours before check-in"
)

POLICY_SUMMARY = (
    "Bookings can be cancelled free of charge at least 24 hours before the check-in date. "
    "Cancellations made less than 24 hours before check-in are not refundable."
)

POLICY_TERMS = [
    "Cancellations must be made at least 24 hours before the check-in date for a full refund.",
    "Cancellations made less than 24 hours before check-in are not eligible for a refund.",
    "No-shows will be charged the full amount of the booking.",
    "Early departure will not result in a refund for unused nights.",
    "All refunds will be processed within 7-14 business days.",
]


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def hours_until(check_in: Union[date, datetime], now: datetime) -> float:
    """Time left before check-in, in hours, with any partial minute counted as a full one."""
    delta = _as_datetime(check_in) - now
    minutes = math.ceil(abs(delta.total_seconds()) / 60)
    return minutes / 60


def is_within_no_cancel_window(
    check_in: Union[date, datetime],
    now: datetime,
    window_hours: int = None,
) -> bool:
    """
    True when ``now`` falls inside the window in which cancellation is refused.

    Once check-in has passed the window no longer applies.
    """
    if window_hours is None:
        window_hours = settings.CANCELLATION_WINDOW_HOURS
    check_in_at = _as_datetime(check_in)
    return hours_until(check_in_at, now) < window_hours and check_in_at > now
