from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import get_db, get_actor
from ..models import BookingStatus
from ..permissions import Actor

router = APIRouter(prefix="/ratings", tags=["ratings"])


def _get_rating_or_404(db: Session, rating_id: int) -> models.Rating:
    rating = db.query(models.Rating).filter(models.Rating.id == rating_id).first()
    if not rating:
        raise HTTPException(status_code=404, detail="Rating not found")
    return rating


@router.post("/", response_model=schemas.RatingOut)
def create_rating(
    rating_in: schemas.RatingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Rate one of your completed bookings. Each booking can be rated once.

    Raises
    ------
    HTTPException
        - 403 if the booking does not exist or is not yours.
        - 422 if the booking is not completed or was already rated.
    """
    booking = db.query(models.Booking).filter(models.Booking.id == rating_in.booking_id).first()
    if not booking or not permissions.authorize(actor, permissions.RATE_BOOKING, booking.user_id):
        raise HTTPException(status_code=403, detail="Unauthorized to rate this booking")

    if booking.booking_status != BookingStatus.COMPLETED:
        raise HTTPException(status_code=422, detail="Can only rate completed bookings")

    existing = db.query(models.Rating).filter(
        models.Rating.guest_id == actor.id,
        models.Rating.booking_id == booking.id,
    ).first()
    if existing:
        raise HTTPException(status_code=422, detail="You have already rated this booking")

    rating = models.Rating(
        guest_id=actor.id,
        booking_id=booking.id,
        rating=rating_in.rating,
        comment=rating_in.comment,
    )
    db.add(rating)
    db.commit()
    db.refresh(rating)
    return rating


@router.get("/room/{room_id}", response_model=List[schemas.RatingOut])
def get_ratings_for_room(
    room_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Ratings of bookings that included this room, newest first.
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    query = (
        db.query(models.Rating)
        .join(models.BookingRoom, models.BookingRoom.booking_id == models.Rating.booking_id)
        .filter(models.BookingRoom.room_id == room_id)
        .order_by(models.Rating.created_at.desc(), models.Rating.id.desc())
    )
    return query.offset((page - 1) * per_page).limit(per_page).all()


@router.put("/{rating_id}", response_model=schemas.RatingOut)
def update_rating(
    rating_id: int,
    rating_update: schemas.RatingUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    rating = _get_rating_or_404(db, rating_id)
    if not permissions.authorize(actor, permissions.EDIT_RATING, rating.guest_id):
        raise HTTPException(status_code=403, detail="Unauthorized to update this rating")

    rating.rating = rating_update.rating
    rating.comment = rating_update.comment
    db.commit()
    db.refresh(rating)
    return rating


@router.delete("/{rating_id}")
def delete_rating(
    rating_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Guests delete their own ratings; admins may remove any rating.
    """
    rating = _get_rating_or_404(db, rating_id)
    if not permissions.authorize(actor, permissions.DELETE_RATING, rating.guest_id):
        raise HTTPException(status_code=403, detail="Unauthorized to delete this rating")

    db.delete(rating)
    db.commit()
    return {"detail": "Rating deleted"}
