"""
Room availability checks.

A room is unavailable for ``[check_in, check_out]`` when it is attached to a
non-cancelled booking whose own range overlaps it. Boundaries are inclusive,
so a stay that ends on the day another starts is a conflict.
"""
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models


def overlaps(start1: date, end1: date, start2: date, end2: date) -> bool:
    """
    Check if two date ranges overlap, boundaries included.
    """
    return start1 <= end2 and end1 >= start2


def find_unavailable_rooms(
    db: Session,
    room_ids: Iterable[int],
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> List[models.Room]:
    """
    Return the rooms among ``room_ids`` already held by an overlapping booking.

    Parameters
    ----------
    room_ids : iterable of int
        Candidate room ids.
    check_in, check_out : date
        Requested stay.
    exclude_booking_id : int, optional
        Booking to ignore, used when a booking is re-checked against itself.
    """
    room_ids = set(room_ids)
    if not room_ids:
        return []

    query = (
        db.query(models.Room)
        .join(models.BookingRoom, models.BookingRoom.room_id == models.Room.id)
        .join(models.Booking, models.Booking.id == models.BookingRoom.booking_id)
        .filter(
            models.Room.id.in_(room_ids),
            models.Booking.booking_status != models.BookingStatus.CANCELLED,
            models.Booking.check_in_date <= check_out,
            models.Booking.check_out_date >= check_in,
        )
    )
    if exclude_booking_id is not None:
        query = query.filter(models.Booking.id != exclude_booking_id)

    return query.distinct().order_by(models.Room.room_number).all()


def booked_room_ids(check_in: date, check_out: date):
    """SELECT of room ids booked over the range, for use in ``NOT IN`` filters."""
    return (
        select(models.BookingRoom.room_id)
        .join(models.Booking, models.Booking.id == models.BookingRoom.booking_id)
        .where(
            models.Booking.booking_status != models.BookingStatus.CANCELLED,
            models.Booking.check_in_date <= check_out,
            models.Booking.check_out_date >= check_in,
        )
    )
