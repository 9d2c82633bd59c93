from datetime import date, datetime, time, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import get_db, get_booking_manager, require_permission
from ..errors import ValidationError
from ..models import BookingStatus, PaymentStatus
from ..permissions import Actor
from ..services.bookings import BookingManager

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_permission(permissions.LIST_ALL_BOOKINGS))],
)


@router.get("/bookings", response_model=List[schemas.BookingOut])
def list_all_bookings(
    status: Optional[BookingStatus] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    List every guest's bookings. *(Admin / Super admin)*

    ``from_date`` bounds the check-in date, ``to_date`` the check-out date.
    """
    if from_date and to_date and to_date < from_date:
        raise ValidationError("to_date must be on or after from_date")
    query = manager.list_bookings(status=status, from_date=from_date, to_date=to_date, all_users=True)
    return query.offset((page - 1) * per_page).limit(per_page).all()


@router.patch("/bookings/{booking_id}", response_model=schemas.BookingOut)
def update_any_booking(
    booking_id: int,
    booking_update: schemas.BookingUpdate,
    manager: BookingManager = Depends(get_booking_manager),
):
    return manager.update(
        booking_id,
        check_in=booking_update.check_in_date,
        check_out=booking_update.check_out_date,
        room_ids=booking_update.room_ids,
        payment_method=booking_update.payment_method,
        total_payment=booking_update.total_payment,
        receipt_url=booking_update.receipt_url,
    )


@router.put("/bookings/{booking_id}/status", response_model=schemas.BookingOut)
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Move a booking to another status. *(Admin / Super admin)*

    Goes through the same transitions as confirm, complete and cancel, so
    terminal bookings stay terminal.
    """
    return manager.set_status(booking_id, payload.booking_status, payload.cancellation_reason)


@router.put("/bookings/{booking_id}/confirm", response_model=schemas.BookingOut)
def confirm_booking(
    booking_id: int,
    manager: BookingManager = Depends(get_booking_manager),
):
    return manager.confirm(booking_id)


@router.put("/bookings/{booking_id}/complete", response_model=schemas.BookingOut)
def complete_booking(
    booking_id: int,
    manager: BookingManager = Depends(get_booking_manager),
):
    return manager.complete(booking_id)


@router.get("/payments", response_model=List[schemas.PaymentOut])
def list_payments(
    payment_status: Optional[PaymentStatus] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_PAYMENTS)),
):
    """
    List payments, newest first. *(Admin / Super admin)*
    """
    query = db.query(models.Payment)
    if payment_status is not None:
        query = query.filter(models.Payment.payment_status == payment_status)
    if from_date is not None:
        query = query.filter(models.Payment.date_payment >= datetime.combine(from_date, time.min))
    if to_date is not None:
        query = query.filter(models.Payment.date_payment < datetime.combine(to_date + timedelta(days=1), time.min))
    query = query.order_by(models.Payment.date_payment.desc(), models.Payment.id.desc())
    return query.offset((page - 1) * per_page).limit(per_page).all()


@router.put("/payments/{payment_id}/status", response_model=schemas.PaymentOut)
def update_payment_status(
    payment_id: int,
    payload: schemas.PaymentStatusUpdate,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Record a manual payment status change. *(Admin / Super admin)*

    A completed payment confirms its pending booking; a failed or refunded
    one cancels a booking that is still live.
    """
    return manager.update_payment_status(payment_id, payload.payment_status)
