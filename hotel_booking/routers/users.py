import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import (
    get_db,
    get_password_hash,
    verify_password,
    authenticate_user,
    create_access_token,
    get_current_user,
    require_permission,
)
from ..permissions import Actor, ROLE_REGULAR

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _ensure_unique(db: Session, username: str, email: str) -> None:
    existing = db.query(models.User).filter(
        (models.User.username == username) | (models.User.email == email)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Username or email already exists")


def _get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/register", response_model=schemas.UserOut)
def register_user(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new guest account.

    Self-registration always creates a regular user; staff accounts are
    created by a super admin.

    Raises
    ------
    HTTPException
        - 400 if the username or email already exists.
    """
    _ensure_unique(db, user_in.username, user_in.email)

    user = models.User(
        name=user_in.name,
        username=user_in.username,
        email=user_in.email,
        hashed_password=get_password_hash(user_in.password),
        role_id=ROLE_REGULAR,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s registered", user.username)
    return user


@router.post("/login", response_model=schemas.Token, tags=["auth"])
def login_for_access_token(
    username: str,
    password: str,
    db: Session = Depends(get_db),
):
    """
    Authenticate a user and return a JWT access token.

    Raises
    ------
    HTTPException
        - 401 if credentials are invalid.
    """
    user = authenticate_user(db, username, password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    token = create_access_token({"sub": user.username, "role_id": user.role_id})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserOut)
def read_current_user(current_user: models.User = Depends(get_current_user)):
    """
    Get the currently authenticated user.
    """
    return current_user


@router.patch("/me", response_model=schemas.UserOut)
def update_current_user(
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Update name or email of the current user.
    """
    data = user_update.model_dump(exclude_unset=True)
    if "email" in data:
        taken = db.query(models.User).filter(
            models.User.email == data["email"], models.User.id != current_user.id
        ).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already in use")

    for field, value in data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user


@router.put("/me/password")
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    return {"detail": "Password changed successfully"}


@router.get("/", response_model=List[schemas.UserOut])
def list_users(
    role_id: Optional[int] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(permissions.VIEW_USERS)),
):
    """
    List users. *(Admin / Super admin)*

    Admins only see guest accounts; super admins see everyone and may
    filter by ``role_id``.
    """
    query = db.query(models.User)
    if not permissions.authorize(actor, permissions.MANAGE_USERS):
        query = query.filter(models.User.role_id == ROLE_REGULAR)
    elif role_id is not None:
        query = query.filter(models.User.role_id == role_id)
    return query.order_by(models.User.id).all()


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(permissions.VIEW_USERS)),
):
    """
    Get a user by id. *(Admin / Super admin)*

    Raises
    ------
    HTTPException
        - 404 if the user does not exist, or is staff and the caller is an admin.
    """
    user = _get_user_or_404(db, user_id)
    if user.role_id != ROLE_REGULAR and not permissions.authorize(actor, permissions.MANAGE_USERS):
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/", response_model=schemas.UserOut)
def create_user(
    user_in: schemas.AdminUserCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_USERS)),
):
    """
    Create an account with any role. *(Super admin only)*
    """
    _ensure_unique(db, user_in.username, user_in.email)

    user = models.User(
        name=user_in.name,
        username=user_in.username,
        email=user_in.email,
        hashed_password=get_password_hash(user_in.password),
        role_id=user_in.role_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s created with role %s", user.username, user.role_id)
    return user


@router.put("/{user_id}/role", response_model=schemas.UserOut)
def update_user_role(
    user_id: int,
    payload: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(permissions.MANAGE_USERS)),
):
    """
    Change a user's role. *(Super admin only)*

    Raises
    ------
    HTTPException
        - 400 if a super admin tries to change their own role.
        - 404 if the user does not exist.
    """
    user = _get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise HTTPException(status_code=400, detail="Cannot change your own role")

    user.role_id = payload.role_id
    db.commit()
    db.refresh(user)
    logger.info("User %s role changed to %s", user.username, user.role_id)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(permissions.MANAGE_USERS)),
):
    """
    Delete a user. *(Super admin only)*
    """
    user = _get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    if user.bookings or user.ratings:
        raise HTTPException(status_code=400, detail="Cannot delete a user with booking history")

    db.delete(user)
    db.commit()
    return {"detail": "User deleted"}
