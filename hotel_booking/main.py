import logging

from fastapi import FastAPI

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .database import Base, engine
from .routers import (
    admin,
    booking_services,
    bookings,
    payments,
    ratings,
    room_types,
    rooms,
    services,
    users,
)
from .error_handlers import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# -----------------------------------------
# Create DB tables
# -----------------------------------------
Base.metadata.create_all(bind=engine)

# -----------------------------------------
# Rate limiter, per client IP
# -----------------------------------------
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description="Hotel booking backend: rooms, bookings, payments, add-on services and ratings.",
    debug=settings.DEBUG,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)

# -----------------------------------------
# Routers (normal + versioned /api/v1)
# -----------------------------------------
ROUTERS = [
    users.router,
    room_types.router,
    rooms.router,
    services.router,
    bookings.policy_router,
    bookings.router,
    booking_services.router,
    payments.router,
    ratings.router,
    admin.router,
]

for router in ROUTERS:
    app.include_router(router)

for router in ROUTERS:
    app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["health"])
def health_check():
    return {"status": "ok"}
