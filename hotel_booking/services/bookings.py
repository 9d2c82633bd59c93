"""
Booking lifecycle.

``BookingManager`` owns every booking state change. It is built per request
with the acting user, so the same code serves guests, admins and super admins;
what each may do is decided by ``permissions.authorize``.

State machine::

    pending   -> confirmed | cancelled | completed
    confirmed -> cancelled | completed | pending (payment reverted)
    cancelled, completed: terminal
"""
import logging
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from .. import models, permissions
from ..config import settings
from ..errors import ConflictError, HotelError, NotFoundError, TransactionError, ValidationError
from ..models import BookingStatus, PaymentMethod, PaymentStatus, TERMINAL_BOOKING_STATUSES
from ..permissions import Actor, ensure_allowed
from .availability import find_unavailable_rooms
from .cancellation import CANCELLATION_POLICY, is_within_no_cancel_window
from .payments import PaymentProcessor

logger = logging.getLogger(__name__)


class BookingManager:
    def __init__(
        self,
        db: Session,
        actor: Actor,
        payments: Optional[PaymentProcessor] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.actor = actor
        self.payments = payments
        self.clock = clock

    # ----- queries -----

    def get(self, booking_id: int) -> models.Booking:
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.VIEW_BOOKING, booking.user_id,
                       "Unauthorized to view this booking")
        return booking

    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        all_users: bool = False,
    ) -> Query:
        """Bookings visible to the actor, newest first.

        ``all_users`` lists every guest's bookings and needs the list-all grant.
        """
        query = self.db.query(models.Booking)
        if all_users:
            ensure_allowed(self.actor, permissions.LIST_ALL_BOOKINGS)
        else:
            query = query.filter(models.Booking.user_id == self.actor.id)

        if status is not None:
            query = query.filter(models.Booking.booking_status == status)
        if from_date is not None:
            query = query.filter(models.Booking.check_in_date >= from_date)
        if to_date is not None:
            query = query.filter(models.Booking.check_out_date <= to_date)
        return query.order_by(models.Booking.created_at.desc(), models.Booking.id.desc())

    # ----- lifecycle -----

    def create(
        self,
        check_in: date,
        check_out: date,
        room_ids: Iterable[int],
        payment_method: PaymentMethod,
        total_payment,
        source_token: Optional[str] = None,
    ) -> models.Booking:
        """
        Book ``room_ids`` for the actor and settle the payment.

        Booking, room assignments and payment are written in one transaction;
        if anything fails nothing is kept. A completed payment confirms the
        booking immediately.

        Raises
        ------
        ValidationError
            Bad dates, empty room list, or card payment without a token.
        NotFoundError
            One of the rooms does not exist.
        ConflictError
            One of the rooms is taken for the requested dates.
        PaymentGatewayError
            The card charge failed.
        """
        self._validate_dates(check_in, check_out)
        rooms = self._validate_room_ids(room_ids)
        payment_method = PaymentMethod(payment_method)
        self._require_payments().validate(payment_method, source_token)
        self._ensure_available(rooms, check_in, check_out)

        try:
            booking = models.Booking(
                user_id=self.actor.id,
                booking_status=BookingStatus.PENDING,
                check_in_date=check_in,
                check_out_date=check_out,
            )
            self.db.add(booking)
            self.db.flush()

            for room_id in sorted(rooms):
                booking.booking_rooms.append(models.BookingRoom(room_id=room_id))

            self._record_payment(booking, payment_method, total_payment, source_token)
            self.db.commit()
        except HotelError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Booking creation failed for user %s", self.actor.id)
            raise TransactionError(f"Failed to create booking: {exc}") from exc

        self.db.refresh(booking)
        logger.info(
            "Booking %s created for user %s (%s rooms, status %s)",
            booking.id, self.actor.id, len(rooms), booking.booking_status.value,
        )
        return booking

    def update(
        self,
        booking_id: int,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        room_ids: Optional[Iterable[int]] = None,
        payment_method: Optional[PaymentMethod] = None,
        total_payment=None,
        receipt_url: Optional[str] = None,
    ) -> models.Booking:
        """
        Change dates, rooms or payment details of a live booking.

        The status is never touched here.
        """
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.UPDATE_BOOKING, booking.user_id,
                       "Unauthorized to update this booking")
        if booking.booking_status in TERMINAL_BOOKING_STATUSES:
            raise ConflictError("Cannot update a cancelled or completed booking")

        new_check_in = check_in if check_in is not None else booking.check_in_date
        new_check_out = check_out if check_out is not None else booking.check_out_date
        if check_in is not None or check_out is not None:
            self._validate_dates(new_check_in, new_check_out, check_today=check_in is not None)

        target_rooms = booking.room_ids
        if room_ids is not None:
            target_rooms = self._validate_room_ids(room_ids)

        if check_in is not None or check_out is not None or room_ids is not None:
            self._ensure_available(target_rooms, new_check_in, new_check_out,
                                   exclude_booking_id=booking.id)

        try:
            booking.check_in_date = new_check_in
            booking.check_out_date = new_check_out
            if room_ids is not None:
                self._replace_rooms(booking, target_rooms)

            payment = booking.payment
            if payment is not None:
                if payment_method is not None:
                    payment.method_payment = PaymentMethod(payment_method)
                if total_payment is not None:
                    payment.total_payment = total_payment
                if receipt_url is not None:
                    payment.receipt_url = receipt_url
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Booking %s update failed", booking_id)
            raise TransactionError(f"Failed to update booking: {exc}") from exc

        self.db.refresh(booking)
        logger.info("Booking %s updated by user %s", booking.id, self.actor.id)
        return booking

    def cancel(self, booking_id: int, reason: Optional[str] = None) -> models.Booking:
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.CANCEL_BOOKING, booking.user_id,
                       "Unauthorized to cancel this booking")

        if booking.booking_status == BookingStatus.CANCELLED:
            raise ConflictError("Booking is already cancelled")
        if booking.booking_status == BookingStatus.COMPLETED:
            raise ConflictError("Cannot cancel a completed booking")

        if is_within_no_cancel_window(booking.check_in_date, self.clock()):
            raise ConflictError(
                f"Cannot cancel booking less than {settings.CANCELLATION_WINDOW_HOURS} "
                "hours before check-in",
                data={"cancellation_policy": CANCELLATION_POLICY},
            )

        booking.booking_status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason
        self._commit(booking, "cancel")
        logger.info("Booking %s cancelled by user %s", booking.id, self.actor.id)
        return booking

    def complete(self, booking_id: int) -> models.Booking:
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.COMPLETE_BOOKING,
                       message="Only admins can complete bookings")

        if booking.booking_status == BookingStatus.COMPLETED:
            raise ConflictError("Booking is already completed")
        if booking.booking_status == BookingStatus.CANCELLED:
            raise ConflictError("Cannot complete a cancelled booking")

        booking.booking_status = BookingStatus.COMPLETED
        self._commit(booking, "complete")
        logger.info("Booking %s completed by user %s", booking.id, self.actor.id)
        return booking

    def confirm(self, booking_id: int) -> models.Booking:
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.CONFIRM_BOOKING,
                       message="Only admins can confirm bookings")

        if booking.booking_status != BookingStatus.PENDING:
            raise ConflictError("Booking is not in pending status")

        booking.booking_status = BookingStatus.CONFIRMED
        self._commit(booking, "confirm")
        logger.info("Booking %s confirmed by user %s", booking.id, self.actor.id)
        return booking

    def set_status(self, booking_id: int, status: BookingStatus,
                   reason: Optional[str] = None) -> models.Booking:
        """Move a booking to ``status`` through the matching transition."""
        status = BookingStatus(status)
        if status == BookingStatus.CONFIRMED:
            return self.confirm(booking_id)
        if status == BookingStatus.COMPLETED:
            return self.complete(booking_id)
        if status == BookingStatus.CANCELLED:
            return self.cancel(booking_id, reason)
        raise ConflictError("A booking only returns to pending when its payment does")

    # ----- payments -----

    def pay(
        self,
        booking_id: int,
        payment_method: PaymentMethod,
        total_payment,
        source_token: Optional[str] = None,
    ) -> models.Payment:
        """Settle a booking that has no payment yet."""
        booking = self._load(booking_id)
        ensure_allowed(self.actor, permissions.PAY_BOOKING, booking.user_id,
                       "Unauthorized to process payment for this booking")
        if booking.payment is not None:
            raise ConflictError("Booking already has a payment")
        if booking.booking_status in TERMINAL_BOOKING_STATUSES:
            raise ConflictError("Cannot pay for a cancelled or completed booking")

        payment_method = PaymentMethod(payment_method)
        self._require_payments().validate(payment_method, source_token)

        try:
            payment = self._record_payment(booking, payment_method, total_payment, source_token)
            self.db.commit()
        except HotelError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Payment for booking %s failed", booking_id)
            raise TransactionError(f"Failed to process payment: {exc}") from exc

        self.db.refresh(payment)
        return payment

    def update_payment_status(self, payment_id: int, status: PaymentStatus) -> models.Payment:
        """
        Record a manual payment status change and carry it over to the booking.

        ``completed`` confirms a pending booking, ``pending`` returns a
        confirmed one to pending, ``failed`` and ``refunded`` cancel a booking
        that is not already terminal.
        """
        ensure_allowed(self.actor, permissions.MANAGE_PAYMENTS,
                       message="Only admins can update payments")
        payment = self.db.query(models.Payment).filter(models.Payment.id == payment_id).first()
        if payment is None:
            raise NotFoundError("Payment not found")

        status = PaymentStatus(status)
        payment.payment_status = status
        booking = payment.booking

        if status == PaymentStatus.COMPLETED and booking.booking_status == BookingStatus.PENDING:
            booking.booking_status = BookingStatus.CONFIRMED
        elif status == PaymentStatus.PENDING and booking.booking_status == BookingStatus.CONFIRMED:
            booking.booking_status = BookingStatus.PENDING
        elif status in (PaymentStatus.FAILED, PaymentStatus.REFUNDED) \
                and booking.booking_status not in TERMINAL_BOOKING_STATUSES:
            booking.booking_status = BookingStatus.CANCELLED
            booking.cancellation_reason = f"Payment {status.value}"

        self._commit(payment, "update payment")
        logger.info("Payment %s set to %s, booking %s is %s",
                    payment.id, status.value, booking.id, booking.booking_status.value)
        return payment

    # ----- helpers -----

    def _load(self, booking_id: int) -> models.Booking:
        booking = self.db.query(models.Booking).filter(models.Booking.id == booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def _require_payments(self) -> PaymentProcessor:
        if self.payments is None:
            raise RuntimeError("BookingManager needs a PaymentProcessor for this operation")
        return self.payments

    def _validate_dates(self, check_in: date, check_out: date, check_today: bool = True) -> None:
        if check_today and check_in < self.clock().date():
            raise ValidationError("Check-in date cannot be in the past")
        if check_out <= check_in:
            raise ValidationError("Check-out date must be after check-in date")

    def _validate_room_ids(self, room_ids: Iterable[int]) -> Set[int]:
        room_ids = set(room_ids or [])
        if not room_ids:
            raise ValidationError("At least one room must be selected")

        found = {
            room_id
            for (room_id,) in self.db.query(models.Room.id).filter(models.Room.id.in_(room_ids))
        }
        missing = sorted(room_ids - found)
        if missing:
            raise NotFoundError("Some rooms do not exist", data={"missing_room_ids": missing})
        return room_ids

    def _ensure_available(self, room_ids: Set[int], check_in: date, check_out: date,
                          exclude_booking_id: Optional[int] = None) -> None:
        taken = find_unavailable_rooms(self.db, room_ids, check_in, check_out, exclude_booking_id)
        if taken:
            logger.info("Rooms %s unavailable for %s..%s",
                        [room.room_number for room in taken], check_in, check_out)
            raise ConflictError(
                "Some rooms are not available for the selected dates",
                data={
                    "unavailable_rooms": [room.room_number for room in taken],
                    "unavailable_room_ids": [room.id for room in taken],
                },
            )

    def _replace_rooms(self, booking: models.Booking, target: Set[int]) -> None:
        current = {booking_room.room_id: booking_room for booking_room in booking.booking_rooms}
        for room_id, booking_room in current.items():
            if room_id not in target:
                booking.booking_rooms.remove(booking_room)
        for room_id in sorted(target - current.keys()):
            booking.booking_rooms.append(models.BookingRoom(room_id=room_id))

    def _record_payment(self, booking: models.Booking, method: PaymentMethod,
                        total_payment, source_token: Optional[str]) -> models.Payment:
        result = self._require_payments().charge(
            method, total_payment, source_token, description=f"Hotel booking #{booking.id}"
        )
        payment = models.Payment(
            total_payment=total_payment,
            method_payment=method,
            transaction_id=result.transaction_id,
            payment_status=result.status,
            receipt_url=result.receipt_url,
            date_payment=datetime.utcnow(),
        )
        booking.payment = payment
        if result.status == PaymentStatus.COMPLETED and booking.booking_status == BookingStatus.PENDING:
            booking.booking_status = BookingStatus.CONFIRMED
        logger.info("Payment for booking %s via %s: %s",
                    booking.id, method.value, result.status.value)
        return payment

    def _commit(self, instance, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to %s (%s)", action, instance)
            raise TransactionError(f"Failed to {action}: {exc}") from exc
        self.db.refresh(instance)
