from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import schemas, models
from ..deps import get_db, get_booking_manager, get_booking_service_manager
from ..models import BookingStatus
from ..services.availability import find_unavailable_rooms
from ..services.booking_services import BookingServiceManager
from ..services.bookings import BookingManager
from ..services.cancellation import POLICY_SUMMARY, POLICY_TERMS

router = APIRouter(prefix="/bookings", tags=["bookings"])

policy_router = APIRouter(tags=["bookings"])


@policy_router.get("/cancellation-policy", response_model=schemas.CancellationPolicyOut)
def get_cancellation_policy():
    return {"policy": POLICY_SUMMARY, "terms": POLICY_TERMS}


@router.get("/check", response_model=schemas.AvailabilityResponse)
def check_room_availability(
    check_in_date: date,
    check_out_date: date,
    room_ids: List[int] = Query(...),
    db: Session = Depends(get_db),
):
    """
    Check if rooms are free over a date range.

    This does not create a booking. A room is reported as unavailable when a
    non-cancelled booking overlaps the range, boundary days included.
    """
    found = db.query(models.Room.id).filter(models.Room.id.in_(room_ids)).count()
    if found != len(set(room_ids)):
        raise HTTPException(status_code=404, detail="Room not found")
    if check_out_date <= check_in_date:
        raise HTTPException(status_code=422, detail="Check-out date must be after check-in date")

    taken = find_unavailable_rooms(db, room_ids, check_in_date, check_out_date)
    return schemas.AvailabilityResponse(
        room_ids=sorted(set(room_ids)),
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        available=not taken,
        unavailable_rooms=[room.room_number for room in taken],
    )


@router.get("/", response_model=List[schemas.BookingOut])
def list_my_bookings(
    status: Optional[BookingStatus] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    List the current user's bookings, newest first.
    """
    query = manager.list_bookings(status=status)
    return query.offset((page - 1) * per_page).limit(per_page).all()


@router.post("/", response_model=schemas.BookingOut)
def create_booking(
    booking_in: schemas.BookingCreate,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Book one or more rooms for the current user.

    Rooms, booking and payment are stored together or not at all. A card
    or PayPal payment that completes confirms the booking straight away; cash
    bookings stay pending until an admin confirms them.

    Raises
    ------
    HotelError
        - 422 invalid dates, or some rooms already booked (listed in ``data``).
        - 404 unknown room ids.
        - 502 the payment gateway failed.
    """
    return manager.create(
        check_in=booking_in.check_in_date,
        check_out=booking_in.check_out_date,
        room_ids=booking_in.room_ids,
        payment_method=booking_in.payment_method,
        total_payment=booking_in.total_payment,
        source_token=booking_in.source_token,
    )


@router.get("/{booking_id}", response_model=schemas.BookingOut)
def get_booking(
    booking_id: int,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Booking details with rooms and payment. Guests only see their own.
    """
    return manager.get(booking_id)


@router.patch("/{booking_id}", response_model=schemas.BookingOut)
def update_booking(
    booking_id: int,
    booking_update: schemas.BookingUpdate,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Change dates, rooms or payment details of a pending or confirmed booking.

    New dates or rooms are checked for availability, ignoring this booking.
    """
    return manager.update(
        booking_id,
        check_in=booking_update.check_in_date,
        check_out=booking_update.check_out_date,
        room_ids=booking_update.room_ids,
        payment_method=booking_update.payment_method,
        total_payment=booking_update.total_payment,
        receipt_url=booking_update.receipt_url,
    )


@router.put("/{booking_id}/cancel", response_model=schemas.BookingOut)
def cancel_booking(
    booking_id: int,
    payload: Optional[schemas.BookingCancel] = None,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Cancel a booking.

    Refused for cancelled or completed bookings, and within 24 hours of
    check-in.
    """
    reason = payload.cancellation_reason if payload else None
    return manager.cancel(booking_id, reason)


@router.get("/{booking_id}/services", response_model=List[schemas.BookingServiceOut])
def list_booking_services(
    booking_id: int,
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    return manager.list_for_booking(booking_id)
