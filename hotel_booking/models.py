from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Date, DateTime, Text, Numeric,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from .database import Base


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_BOOKING_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    CASH = "cash"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role_id = Column(Integer, nullable=False, default=1)  # 1 regular, 2 admin, 3 super admin
    created_at = Column(DateTime, default=datetime.utcnow)

    bookings = relationship("Booking", back_populates="user")
    ratings = relationship("Rating", back_populates="guest")


class RoomType(Base):
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # nightly
    capacity = Column(Integer, nullable=False, default=2)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)

    rooms = relationship("Room", back_populates="room_type")


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String, unique=True, index=True, nullable=False)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    room_type = relationship("RoomType", back_populates="rooms")
    booking_rooms = relationship("BookingRoom", back_populates="room")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    cancellation_reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="bookings")
    booking_rooms = relationship(
        "BookingRoom", back_populates="booking", cascade="all, delete-orphan"
    )
    payment = relationship(
        "Payment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    services = relationship(
        "BookingService", back_populates="booking", cascade="all, delete-orphan"
    )
    ratings = relationship("Rating", back_populates="booking", cascade="all, delete-orphan")

    @property
    def rooms(self):
        return [booking_room.room for booking_room in self.booking_rooms]

    @property
    def room_ids(self):
        return {booking_room.room_id for booking_room in self.booking_rooms}


class BookingRoom(Base):
    __tablename__ = "booking_room"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)

    booking = relationship("Booking", back_populates="booking_rooms")
    room = relationship("Room", back_populates="booking_rooms")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    total_payment = Column(Numeric(10, 2), nullable=False)
    method_payment = Column(SQLEnum(PaymentMethod), nullable=False)
    transaction_id = Column(String, nullable=True)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    receipt_url = Column(String, nullable=True)
    date_payment = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="payment")


class ServiceType(Base):
    __tablename__ = "service_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)

    services = relationship("Service", back_populates="service_type")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    available = Column(Boolean, default=True)
    service_type_id = Column(Integer, ForeignKey("service_types.id"), nullable=False)

    service_type = relationship("ServiceType", back_populates="services")


class BookingService(Base):
    __tablename__ = "booking_services"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    service_type_id = Column(Integer, ForeignKey("service_types.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)

    booking = relationship("Booking", back_populates="services")
    service = relationship("Service")
    service_type = relationship("ServiceType")


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("guest_id", "booking_id", name="uq_rating_guest_booking"),)

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    guest = relationship("User", back_populates="ratings")
    booking = relationship("Booking", back_populates="ratings")
