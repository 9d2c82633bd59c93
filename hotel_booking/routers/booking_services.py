from typing import List

from fastapi import APIRouter, Depends

from .. import schemas
from ..deps import get_booking_service_manager
from ..services.booking_services import BookingServiceManager

router = APIRouter(prefix="/booking-services", tags=["booking services"])


@router.get("/", response_model=List[schemas.BookingServiceOut])
def list_booking_services(
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    """
    List add-on services.

    Guests see the add-ons of their own bookings; admins see all of them.
    """
    return manager.list_all()


@router.post("/", response_model=schemas.BookingServiceOut)
def create_booking_service(
    line_in: schemas.BookingServiceCreate,
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    return manager.create(
        booking_id=line_in.booking_id,
        service_id=line_in.service_id,
        service_type_id=line_in.service_type_id,
        quantity=line_in.quantity,
        price=line_in.price,
    )


@router.get("/{booking_service_id}", response_model=schemas.BookingServiceOut)
def get_booking_service(
    booking_service_id: int,
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    return manager.get(booking_service_id)


@router.patch("/{booking_service_id}", response_model=schemas.BookingServiceOut)
def update_booking_service(
    booking_service_id: int,
    line_update: schemas.BookingServiceUpdate,
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    return manager.update(
        booking_service_id,
        quantity=line_update.quantity,
        price=line_update.price,
    )


@router.delete("/{booking_service_id}")
def delete_booking_service(
    booking_service_id: int,
    manager: BookingServiceManager = Depends(get_booking_service_manager),
):
    manager.delete(booking_service_id)
    return {"detail": "Booking service deleted"}
