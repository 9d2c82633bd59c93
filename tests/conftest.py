"""
Pytest configuration and shared fixtures for testing the Hotel Booking API.
"""
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hotel_booking.database import Base
from hotel_booking.main import app
from hotel_booking.deps import get_db, get_password_hash, get_payment_gateway
from hotel_booking.circuit_breaker import payment_gateway_breaker
from hotel_booking.services.payments import GatewayCharge, PaymentGateway
from hotel_booking import models


# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeGateway(PaymentGateway):
    """
    Stand-in for the card gateway.

    ``outcome`` is the charge status to report, or ``"error"`` to raise.
    """

    def __init__(self, outcome: str = "succeeded"):
        self.outcome = outcome
        self.calls = []

    def charge(self, amount_cents, currency, source, description):
        self.calls.append(
            {"amount": amount_cents, "currency": currency, "source": source, "description": description}
        )
        if self.outcome == "error":
            raise RuntimeError("gateway unreachable")
        return GatewayCharge(
            id=f"ch_test_{len(self.calls)}",
            status=self.outcome,
            receipt_url="https://payments.example.com/receipts/1",
        )


@pytest.fixture(autouse=True)
def reset_payment_breaker():
    """
    Keep the shared gateway breaker closed between tests.
    """
    payment_gateway_breaker.close()
    yield
    payment_gateway_breaker.close()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def client(db_session, gateway):
    """
    Create a test client with the test database and the fake gateway.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, name, username, password, role_id):
    user = models.User(
        name=name,
        username=username,
        email=f"{username}@example.com",
        hashed_password=get_password_hash(password),
        role_id=role_id,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _login(client, username, password):
    response = client.post(
        "/users/login",
        params={"username": username, "password": password},
    )
    return response.json()["access_token"]


@pytest.fixture
def regular_user(db_session):
    """
    Create a guest account for testing.
    """
    return _make_user(db_session, "Regular Guest", "guest", "guestpass123", 1)


@pytest.fixture
def other_user(db_session):
    """
    Create a second guest, who owns nothing the first guest booked.
    """
    return _make_user(db_session, "Other Guest", "otherguest", "otherpass123", 1)


@pytest.fixture
def admin_user(db_session):
    """
    Create an admin user for testing.
    """
    return _make_user(db_session, "Admin User", "admin", "adminpass123", 2)


@pytest.fixture
def super_admin_user(db_session):
    """
    Create a super admin user for testing.
    """
    return _make_user(db_session, "Super Admin", "superadmin", "superpass123", 3)


@pytest.fixture
def regular_token(client, regular_user):
    return _login(client, "guest", "guestpass123")


@pytest.fixture
def other_token(client, other_user):
    return _login(client, "otherguest", "otherpass123")


@pytest.fixture
def admin_token(client, admin_user):
    return _login(client, "admin", "adminpass123")


@pytest.fixture
def super_admin_token(client, super_admin_user):
    return _login(client, "superadmin", "superpass123")


@pytest.fixture
def room_type(db_session):
    """
    Create a room type at 150.00 per night.
    """
    room_type = models.RoomType(
        name="Deluxe",
        price=Decimal("150.00"),
        capacity=2,
        description="Deluxe double room",
    )
    db_session.add(room_type)
    db_session.commit()
    db_session.refresh(room_type)
    return room_type


@pytest.fixture
def sample_rooms(db_session, room_type):
    """
    Create rooms 101, 102 and 201.
    """
    rooms = [
        models.Room(room_number="101", room_type_id=room_type.id, description="Garden view"),
        models.Room(room_number="102", room_type_id=room_type.id, description="Sea view"),
        models.Room(room_number="201", room_type_id=room_type.id, description="Top floor"),
    ]
    for room in rooms:
        db_session.add(room)
    db_session.commit()
    for room in rooms:
        db_session.refresh(room)
    return rooms


@pytest.fixture
def sample_room(sample_rooms):
    return sample_rooms[0]


def make_booking(db_session, user, rooms, check_in, check_out,
                 status=models.BookingStatus.PENDING, payment=True):
    """
    Insert a booking directly, bypassing the lifecycle checks.
    """
    booking = models.Booking(
        user_id=user.id,
        booking_status=status,
        check_in_date=check_in,
        check_out_date=check_out,
    )
    for room in rooms:
        booking.booking_rooms.append(models.BookingRoom(room_id=room.id))
    if payment:
        booking.payment = models.Payment(
            total_payment=Decimal("300.00"),
            method_payment=models.PaymentMethod.CASH,
            transaction_id="CASH_test",
            payment_status=models.PaymentStatus.PENDING,
        )
    db_session.add(booking)
    db_session.commit()
    db_session.refresh(booking)
    return booking


@pytest.fixture
def sample_booking(db_session, regular_user, sample_room):
    """
    A pending cash booking of room 101, ten to twelve days from today.
    """
    today = date.today()
    return make_booking(
        db_session, regular_user, [sample_room],
        today + timedelta(days=10), today + timedelta(days=12),
    )


@pytest.fixture
def unpaid_booking(db_session, regular_user, sample_rooms):
    """
    A pending booking of room 102 with no payment yet.
    """
    today = date.today()
    return make_booking(
        db_session, regular_user, [sample_rooms[1]],
        today + timedelta(days=20), today + timedelta(days=22),
        payment=False,
    )


@pytest.fixture
def completed_booking(db_session, regular_user, sample_rooms):
    """
    A completed stay in room 201, last week.
    """
    today = date.today()
    return make_booking(
        db_session, regular_user, [sample_rooms[2]],
        today - timedelta(days=7), today - timedelta(days=5),
        status=models.BookingStatus.COMPLETED,
    )


@pytest.fixture
def service_type(db_session):
    service_type = models.ServiceType(name="Spa", description="Wellness treatments")
    db_session.add(service_type)
    db_session.commit()
    db_session.refresh(service_type)
    return service_type


@pytest.fixture
def other_service_type(db_session):
    service_type = models.ServiceType(name="Dining", description="Meals and drinks")
    db_session.add(service_type)
    db_session.commit()
    db_session.refresh(service_type)
    return service_type


@pytest.fixture
def sample_service(db_session, service_type):
    service = models.Service(
        name="Massage",
        description="One hour massage",
        price=Decimal("80.00"),
        available=True,
        service_type_id=service_type.id,
    )
    db_session.add(service)
    db_session.commit()
    db_session.refresh(service)
    return service


def get_auth_header(token: str) -> dict:
    """
    Helper function to create authorization header.
    """
    return {"Authorization": f"Bearer {token}"}
