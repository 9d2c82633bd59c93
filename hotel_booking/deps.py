from datetime import datetime, timedelta, timezone
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models, schemas
from .config import settings
from .database import SessionLocal
from .permissions import Actor, authorize
from .services.booking_services import BookingServiceManager
from .services.bookings import BookingManager
from .services.payments import PaymentGateway, PaymentProcessor, StripeGateway


# ----- DB -----
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ----- Auth / JWT -----
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="users/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_user_by_username(db: Session, username: str) -> models.User | None:
    return db.query(models.User).filter(models.User.username == username).first()


def authenticate_user(db: Session, username: str, password: str) -> models.User | None:
    user = get_user_by_username(db, username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username: str | None = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = schemas.TokenData(username=username, role_id=payload.get("role_id"))
    except JWTError:
        raise credentials_exception

    user = get_user_by_username(db, token_data.username)
    if user is None:
        raise credentials_exception
    return user


def get_actor(current_user: models.User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(current_user)


def require_permission(action: str):
    """
    Usage: actor: Actor = Depends(require_permission(permissions.MANAGE_CATALOG))
    """
    def permission_checker(actor: Actor = Depends(get_actor)) -> Actor:
        if not authorize(actor, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return actor

    return permission_checker


# ----- Services -----
def get_payment_gateway() -> PaymentGateway:
    return StripeGateway(settings.STRIPE_SECRET_KEY)


def get_payment_processor(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentProcessor:
    return PaymentProcessor(gateway)


def get_booking_manager(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    payments: PaymentProcessor = Depends(get_payment_processor),
) -> BookingManager:
    return BookingManager(db, actor, payments)


def get_booking_service_manager(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> BookingServiceManager:
    return BookingServiceManager(db, actor)
