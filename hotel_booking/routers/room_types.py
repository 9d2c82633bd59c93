from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import get_db, require_permission
from ..permissions import Actor

router = APIRouter(prefix="/room-types", tags=["room types"])


def _get_room_type_or_404(db: Session, room_type_id: int) -> models.RoomType:
    room_type = db.query(models.RoomType).filter(models.RoomType.id == room_type_id).first()
    if not room_type:
        raise HTTPException(status_code=404, detail="Room type not found")
    return room_type


@router.get("/", response_model=List[schemas.RoomTypeOut])
def list_room_types(db: Session = Depends(get_db)):
    return db.query(models.RoomType).order_by(models.RoomType.id).all()


@router.get("/{room_type_id}", response_model=schemas.RoomTypeOut)
def get_room_type(room_type_id: int, db: Session = Depends(get_db)):
    return _get_room_type_or_404(db, room_type_id)


@router.post("/", response_model=schemas.RoomTypeOut)
def create_room_type(
    room_type_in: schemas.RoomTypeCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    """
    Create a room type with its nightly price. *(Admin)*
    """
    existing = db.query(models.RoomType).filter(models.RoomType.name == room_type_in.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Room type name already exists")

    room_type = models.RoomType(**room_type_in.model_dump())
    db.add(room_type)
    db.commit()
    db.refresh(room_type)
    return room_type


@router.patch("/{room_type_id}", response_model=schemas.RoomTypeOut)
def update_room_type(
    room_type_id: int,
    room_type_update: schemas.RoomTypeUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    room_type = _get_room_type_or_404(db, room_type_id)
    for field, value in room_type_update.model_dump(exclude_unset=True).items():
        setattr(room_type, field, value)
    db.commit()
    db.refresh(room_type)
    return room_type


@router.delete("/{room_type_id}")
def delete_room_type(
    room_type_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    """
    Delete a room type. *(Admin)*

    Raises
    ------
    HTTPException
        - 400 if rooms still use this type.
    """
    room_type = _get_room_type_or_404(db, room_type_id)
    if room_type.rooms:
        raise HTTPException(status_code=400, detail="Room type is in use by existing rooms")
    db.delete(room_type)
    db.commit()
    return {"detail": "Room type deleted"}
