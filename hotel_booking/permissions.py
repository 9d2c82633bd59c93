"""
Capability checks.

Every role maps to a set of grants ``{action: scope}``. A scope of ``OWN``
allows the action only on resources owned by the actor; ``ANY`` allows it on
every resource. Adding a role means adding one entry to ``GRANTS``.
"""
from dataclasses import dataclass
from typing import Optional

from .errors import AuthorizationError

ROLE_REGULAR = 1
ROLE_ADMIN = 2
ROLE_SUPER_ADMIN = 3

ROLE_NAMES = {
    ROLE_REGULAR: "regular",
    ROLE_ADMIN: "admin",
    ROLE_SUPER_ADMIN: "super_admin",
}

OWN = "own"
ANY = "any"

# actions
VIEW_BOOKING = "booking:view"
LIST_ALL_BOOKINGS = "booking:list_all"
UPDATE_BOOKING = "booking:update"
CANCEL_BOOKING = "booking:cancel"
CONFIRM_BOOKING = "booking:confirm"
COMPLETE_BOOKING = "booking:complete"
PAY_BOOKING = "payment:pay"
MANAGE_PAYMENTS = "payment:manage"
MANAGE_BOOKING_SERVICES = "booking_service:manage"
VIEW_BOOKING_SERVICES = "booking_service:view"
RATE_BOOKING = "rating:create"
EDIT_RATING = "rating:edit"
DELETE_RATING = "rating:delete"
MANAGE_CATALOG = "catalog:manage"
VIEW_USERS = "user:view"
MANAGE_USERS = "user:manage"

_GUEST_GRANTS = {
    VIEW_BOOKING: OWN,
    UPDATE_BOOKING: OWN,
    CANCEL_BOOKING: OWN,
    PAY_BOOKING: OWN,
    MANAGE_BOOKING_SERVICES: OWN,
    VIEW_BOOKING_SERVICES: OWN,
    RATE_BOOKING: OWN,
    EDIT_RATING: OWN,
    DELETE_RATING: OWN,
}

_STAFF_GRANTS = {
    VIEW_BOOKING: ANY,
    LIST_ALL_BOOKINGS: ANY,
    UPDATE_BOOKING: ANY,
    CANCEL_BOOKING: ANY,
    CONFIRM_BOOKING: ANY,
    COMPLETE_BOOKING: ANY,
    PAY_BOOKING: OWN,
    MANAGE_PAYMENTS: ANY,
    MANAGE_BOOKING_SERVICES: ANY,
    VIEW_BOOKING_SERVICES: ANY,
    RATE_BOOKING: OWN,
    EDIT_RATING: OWN,
    DELETE_RATING: ANY,
    MANAGE_CATALOG: ANY,
    VIEW_USERS: ANY,
}

GRANTS = {
    ROLE_REGULAR: _GUEST_GRANTS,
    ROLE_ADMIN: _STAFF_GRANTS,
    ROLE_SUPER_ADMIN: {**_STAFF_GRANTS, MANAGE_USERS: ANY},
}


@dataclass(frozen=True)
class Actor:
    id: int
    role_id: int

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role_id=user.role_id)

    @property
    def role_name(self) -> str:
        return ROLE_NAMES.get(self.role_id, "unknown")

    def has_scope(self, action: str, scope: str) -> bool:
        return GRANTS.get(self.role_id, {}).get(action) == scope


def authorize(actor: Actor, action: str, owner_id: Optional[int] = None) -> bool:
    """Return True if ``actor`` may perform ``action`` on a resource owned by ``owner_id``.

    Passing ``owner_id=None`` asks whether the action is allowed at all.
    """
    scope = GRANTS.get(actor.role_id, {}).get(action)
    if scope == ANY:
        return True
    if scope == OWN:
        return owner_id is None or owner_id == actor.id
    return False


def ensure_allowed(actor: Actor, action: str, owner_id: Optional[int] = None,
                   message: str = "Not enough permissions") -> None:
    if not authorize(actor, action, owner_id):
        raise AuthorizationError(message)
