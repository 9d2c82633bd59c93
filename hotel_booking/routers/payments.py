from typing import List

from fastapi import APIRouter, Depends

from .. import schemas
from ..deps import get_booking_manager
from ..services.bookings import BookingManager
from ..services.payments import PAYMENT_METHODS

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/methods", response_model=List[schemas.PaymentMethodOut])
def get_payment_methods():
    return PAYMENT_METHODS


@router.post("/", response_model=schemas.PaymentOut)
def process_payment(
    payment_in: schemas.PaymentCreate,
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Pay for one of your bookings that has no payment yet.

    ``source_token`` is required for credit cards. A completed payment
    confirms the booking.

    Raises
    ------
    HotelError
        - 403 if the booking belongs to someone else.
        - 422 if the booking already has a payment.
        - 502 if the payment gateway failed.
    """
    return manager.pay(
        payment_in.booking_id,
        payment_method=payment_in.method_payment,
        total_payment=payment_in.total_payment,
        source_token=payment_in.source_token,
    )
