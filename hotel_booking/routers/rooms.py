from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import get_db, require_permission
from ..errors import ValidationError
from ..permissions import Actor
from ..services.availability import booked_room_ids

router = APIRouter(prefix="/rooms", tags=["rooms"])

SORT_COLUMNS = {
    "id": models.Room.id,
    "room_number": models.Room.room_number,
    "price": models.RoomType.price,
}


def _check_room_type(db: Session, room_type_id: int) -> None:
    exists = db.query(models.RoomType).filter(models.RoomType.id == room_type_id).first()
    if not exists:
        raise HTTPException(status_code=404, detail="Room type not found")


@router.post("/", response_model=schemas.RoomOut)
def create_room(
    room_in: schemas.RoomCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    """
    Create a new room. *(Admin)*

    Raises
    ------
    HTTPException
        - 400 if a room with the same number already exists.
        - 404 if the room type does not exist.
    """
    existing = db.query(models.Room).filter(models.Room.room_number == room_in.room_number).first()
    if existing:
        raise HTTPException(status_code=400, detail="Room number already exists")
    _check_room_type(db, room_in.room_type_id)

    room = models.Room(**room_in.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@router.get("/", response_model=List[schemas.RoomOut])
def list_rooms(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, max_length=50),
    room_type_id: Optional[int] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    check_in_date: Optional[date] = None,
    check_out_date: Optional[date] = None,
    scol: Literal["id", "room_number", "price"] = "room_number",
    sdir: Literal["asc", "desc"] = "asc",
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
):
    """
    List rooms with optional filters.

    Parameters
    ----------
    search : str, optional
        Substring of the room number, description or room type name.
    room_type_id : int, optional
        Only rooms of this type.
    min_price, max_price : Decimal, optional
        Nightly price bounds of the room type.
    check_in_date, check_out_date : date, optional
        When both are given, only rooms free for that stay are returned.
    scol, sdir : str
        Sort column and direction.
    """
    query = db.query(models.Room).join(models.RoomType)

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.Room.room_number.ilike(pattern),
                models.Room.description.ilike(pattern),
                models.RoomType.name.ilike(pattern),
            )
        )
    if room_type_id is not None:
        query = query.filter(models.Room.room_type_id == room_type_id)
    if min_price is not None:
        query = query.filter(models.RoomType.price >= min_price)
    if max_price is not None:
        query = query.filter(models.RoomType.price <= max_price)

    if check_in_date is not None and check_out_date is not None:
        if check_out_date <= check_in_date:
            raise ValidationError("Check-out date must be after check-in date")
        taken = booked_room_ids(check_in_date, check_out_date)
        query = query.filter(models.Room.id.notin_(taken))

    column = SORT_COLUMNS[scol]
    query = query.order_by(column.desc() if sdir == "desc" else column.asc(), models.Room.id)
    return query.offset((page - 1) * per_page).limit(per_page).all()


@router.get("/{room_id}", response_model=schemas.RoomOut)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a single room by its ID, with its room type.
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.patch("/{room_id}", response_model=schemas.RoomOut)
def update_room(
    room_id: int,
    room_update: schemas.RoomUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    """
    Update details of an existing room. *(Admin)*
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    data = room_update.model_dump(exclude_unset=True)
    if "room_number" in data and data["room_number"] != room.room_number:
        taken = db.query(models.Room).filter(models.Room.room_number == data["room_number"]).first()
        if taken:
            raise HTTPException(status_code=400, detail="Room number already exists")
    if "room_type_id" in data:
        _check_room_type(db, data["room_type_id"])

    for field, value in data.items():
        setattr(room, field, value)
    db.commit()
    db.refresh(room)
    return room


@router.delete("/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    """
    Delete a room. *(Admin)*

    Rooms that appear in any booking are kept for history; deactivate them instead.
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    if room.booking_rooms:
        raise HTTPException(status_code=400, detail="Room has bookings and cannot be deleted")
    db.delete(room)
    db.commit()
    return {"detail": "Room deleted"}
