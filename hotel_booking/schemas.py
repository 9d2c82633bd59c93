from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import BookingStatus, PaymentMethod, PaymentStatus


class ORMModel(BaseModel):
    class Config:
        from_attributes = True


# ----- Users -----
class UserBase(BaseModel):
    name: str
    username: str
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class AdminUserCreate(UserCreate):
    role_id: int = Field(1, ge=1, le=3)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class UserRoleUpdate(BaseModel):
    role_id: int = Field(..., ge=1, le=3)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class UserOut(UserBase, ORMModel):
    id: int
    role_id: int


# ----- Room types -----
class RoomTypeBase(BaseModel):
    name: str
    price: Decimal = Field(..., ge=0)
    capacity: int = Field(2, ge=1)
    description: Optional[str] = None
    image: Optional[str] = None


class RoomTypeCreate(RoomTypeBase):
    pass


class RoomTypeUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    image: Optional[str] = None


class RoomTypeOut(RoomTypeBase, ORMModel):
    id: int


# ----- Rooms -----
class RoomBase(BaseModel):
    room_number: str
    room_type_id: int
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    is_active: bool = True


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    room_number: Optional[str] = None
    room_type_id: Optional[int] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    is_active: Optional[bool] = None


class RoomOut(RoomBase, ORMModel):
    id: int
    room_type: Optional[RoomTypeOut] = None


# ----- Payments -----
class PaymentOut(ORMModel):
    id: int
    booking_id: int
    total_payment: Decimal
    method_payment: PaymentMethod
    transaction_id: Optional[str] = None
    payment_status: PaymentStatus
    receipt_url: Optional[str] = None
    date_payment: Optional[datetime] = None


class PaymentCreate(BaseModel):
    booking_id: int
    method_payment: PaymentMethod
    total_payment: Decimal = Field(..., ge=0)
    source_token: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class PaymentMethodOut(BaseModel):
    id: str
    name: str
    description: str
    requires_additional_info: bool


# ----- Bookings -----
class BookingCreate(BaseModel):
    check_in_date: date
    check_out_date: date
    room_ids: List[int] = Field(..., min_length=1)
    payment_method: PaymentMethod
    total_payment: Decimal = Field(..., ge=0)
    source_token: Optional[str] = None


class BookingUpdate(BaseModel):
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    room_ids: Optional[List[int]] = Field(None, min_length=1)
    payment_method: Optional[PaymentMethod] = None
    total_payment: Optional[Decimal] = Field(None, ge=0)
    receipt_url: Optional[str] = None


class BookingCancel(BaseModel):
    cancellation_reason: Optional[str] = Field(None, max_length=255)


class BookingStatusUpdate(BaseModel):
    booking_status: BookingStatus
    cancellation_reason: Optional[str] = Field(None, max_length=255)


class BookingOut(ORMModel):
    id: int
    user_id: int
    booking_status: BookingStatus
    check_in_date: date
    check_out_date: date
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    rooms: List[RoomOut] = []
    payment: Optional[PaymentOut] = None


class CancellationPolicyOut(BaseModel):
    policy: str
    terms: List[str]


# ----- Service catalogue -----
class ServiceTypeBase(BaseModel):
    name: str
    description: Optional[str] = None


class ServiceTypeCreate(ServiceTypeBase):
    pass


class ServiceTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ServiceTypeOut(ServiceTypeBase, ORMModel):
    id: int


class ServiceBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    available: bool = True
    service_type_id: int


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    available: Optional[bool] = None
    service_type_id: Optional[int] = None


class ServiceOut(ServiceBase, ORMModel):
    id: int


# ----- Booking services (add-ons) -----
class BookingServiceCreate(BaseModel):
    booking_id: int
    service_id: int
    service_type_id: int
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)


class BookingServiceUpdate(BaseModel):
    quantity: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0)


class BookingServiceOut(ORMModel):
    id: int
    booking_id: int
    service_id: int
    service_type_id: int
    quantity: int
    price: Decimal


# ----- Ratings -----
class RatingCreate(BaseModel):
    booking_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., max_length=500)


class RatingUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., max_length=500)


class RatingOut(ORMModel):
    id: int
    guest_id: int
    booking_id: int
    rating: int
    comment: Optional[str] = None


# ----- Auth -----
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    username: Optional[str] = None
    role_id: Optional[int] = None


# ----- Availability responses -----
class AvailabilityResponse(BaseModel):
    room_ids: List[int]
    check_in_date: date
    check_out_date: date
    available: bool
    unavailable_rooms: List[str] = []
