"""
Add-on services attached to bookings (spa, meals, transfers...).

Line items live independently of the room booking, except that a booking
which is cancelled or completed no longer accepts changes to its add-ons.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, permissions
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import TERMINAL_BOOKING_STATUSES
from ..permissions import ANY, Actor, ensure_allowed

logger = logging.getLogger(__name__)


class BookingServiceManager:
    def __init__(self, db: Session, actor: Actor):
        self.db = db
        self.actor = actor

    def list_all(self) -> List[models.BookingService]:
        query = self.db.query(models.BookingService)
        if not self.actor.has_scope(permissions.VIEW_BOOKING_SERVICES, ANY):
            query = query.join(models.Booking).filter(models.Booking.user_id == self.actor.id)
        return query.order_by(models.BookingService.id.desc()).all()

    def list_for_booking(self, booking_id: int) -> List[models.BookingService]:
        booking = self._load_booking(booking_id)
        ensure_allowed(self.actor, permissions.VIEW_BOOKING_SERVICES, booking.user_id,
                       "Unauthorized to view services of this booking")
        return list(booking.services)

    def get(self, booking_service_id: int) -> models.BookingService:
        line = self._load(booking_service_id)
        ensure_allowed(self.actor, permissions.VIEW_BOOKING_SERVICES, line.booking.user_id,
                       "Unauthorized to view this booking service")
        return line

    def create(self, booking_id: int, service_id: int, service_type_id: int,
               quantity: int, price) -> models.BookingService:
        booking = self._load_booking(booking_id)
        ensure_allowed(self.actor, permissions.MANAGE_BOOKING_SERVICES, booking.user_id,
                       "Unauthorized to add services to this booking")
        self._ensure_editable(booking)
        self._validate_amounts(quantity, price)

        service = self.db.query(models.Service).filter(models.Service.id == service_id).first()
        if service is None:
            raise NotFoundError("Service not found")
        service_type = (
            self.db.query(models.ServiceType)
            .filter(models.ServiceType.id == service_type_id)
            .first()
        )
        if service_type is None:
            raise NotFoundError("Service type not found")
        if service.service_type_id != service_type.id:
            raise ValidationError("Service does not belong to the given service type")

        line = models.BookingService(
            booking_id=booking.id,
            service_id=service.id,
            service_type_id=service_type.id,
            quantity=quantity,
            price=price,
        )
        self.db.add(line)
        self.db.commit()
        self.db.refresh(line)
        logger.info("Service %s added to booking %s", service.id, booking.id)
        return line

    def update(self, booking_service_id: int, quantity: Optional[int] = None,
               price=None) -> models.BookingService:
        line = self._load(booking_service_id)
        ensure_allowed(self.actor, permissions.MANAGE_BOOKING_SERVICES, line.booking.user_id,
                       "Unauthorized to update this booking service")
        self._ensure_editable(line.booking)
        self._validate_amounts(quantity, price)

        if quantity is not None:
            line.quantity = quantity
        if price is not None:
            line.price = price
        self.db.commit()
        self.db.refresh(line)
        return line

    def delete(self, booking_service_id: int) -> None:
        line = self._load(booking_service_id)
        ensure_allowed(self.actor, permissions.MANAGE_BOOKING_SERVICES, line.booking.user_id,
                       "Unauthorized to delete this booking service")
        self._ensure_editable(line.booking)
        self.db.delete(line)
        self.db.commit()
        logger.info("Booking service %s deleted by user %s", booking_service_id, self.actor.id)

    def _load(self, booking_service_id: int) -> models.BookingService:
        line = (
            self.db.query(models.BookingService)
            .filter(models.BookingService.id == booking_service_id)
            .first()
        )
        if line is None:
            raise NotFoundError("Booking service not found")
        return line

    def _load_booking(self, booking_id: int) -> models.Booking:
        booking = self.db.query(models.Booking).filter(models.Booking.id == booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _ensure_editable(booking: models.Booking) -> None:
        if booking.booking_status in TERMINAL_BOOKING_STATUSES:
            raise ConflictError("Cannot change services of a cancelled or completed booking")

    @staticmethod
    def _validate_amounts(quantity: Optional[int], price) -> None:
        if quantity is not None and quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if price is not None and price < 0:
            raise ValidationError("Price cannot be negative")
