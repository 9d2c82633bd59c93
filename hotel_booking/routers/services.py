from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas, models, permissions
from ..deps import get_db, require_permission
from ..permissions import Actor

router = APIRouter(tags=["services"])


def _get_service_type_or_404(db: Session, service_type_id: int) -> models.ServiceType:
    service_type = (
        db.query(models.ServiceType).filter(models.ServiceType.id == service_type_id).first()
    )
    if not service_type:
        raise HTTPException(status_code=404, detail="Service type not found")
    return service_type


def _get_service_or_404(db: Session, service_id: int) -> models.Service:
    service = db.query(models.Service).filter(models.Service.id == service_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


# ----- Service types -----
@router.get("/service-types", response_model=List[schemas.ServiceTypeOut])
def list_service_types(db: Session = Depends(get_db)):
    return db.query(models.ServiceType).order_by(models.ServiceType.id).all()


@router.get("/service-types/{service_type_id}", response_model=schemas.ServiceTypeOut)
def get_service_type(service_type_id: int, db: Session = Depends(get_db)):
    return _get_service_type_or_404(db, service_type_id)


@router.post("/service-types", response_model=schemas.ServiceTypeOut)
def create_service_type(
    service_type_in: schemas.ServiceTypeCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    existing = (
        db.query(models.ServiceType).filter(models.ServiceType.name == service_type_in.name).first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="Service type name already exists")

    service_type = models.ServiceType(**service_type_in.model_dump())
    db.add(service_type)
    db.commit()
    db.refresh(service_type)
    return service_type


@router.patch("/service-types/{service_type_id}", response_model=schemas.ServiceTypeOut)
def update_service_type(
    service_type_id: int,
    service_type_update: schemas.ServiceTypeUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    service_type = _get_service_type_or_404(db, service_type_id)
    for field, value in service_type_update.model_dump(exclude_unset=True).items():
        setattr(service_type, field, value)
    db.commit()
    db.refresh(service_type)
    return service_type


@router.delete("/service-types/{service_type_id}")
def delete_service_type(
    service_type_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    service_type = _get_service_type_or_404(db, service_type_id)
    if service_type.services:
        raise HTTPException(status_code=400, detail="Service type is in use by existing services")
    db.delete(service_type)
    db.commit()
    return {"detail": "Service type deleted"}


# ----- Services -----
@router.get("/services", response_model=List[schemas.ServiceOut])
def list_services(
    service_type_id: Optional[int] = None,
    only_available: bool = False,
    db: Session = Depends(get_db),
):
    """
    List bookable add-on services.
    """
    query = db.query(models.Service)
    if service_type_id is not None:
        query = query.filter(models.Service.service_type_id == service_type_id)
    if only_available:
        query = query.filter(models.Service.available == True)  # noqa: E712
    return query.order_by(models.Service.id).all()


@router.get("/services/{service_id}", response_model=schemas.ServiceOut)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return _get_service_or_404(db, service_id)


@router.post("/services", response_model=schemas.ServiceOut)
def create_service(
    service_in: schemas.ServiceCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    _get_service_type_or_404(db, service_in.service_type_id)
    service = models.Service(**service_in.model_dump())
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@router.patch("/services/{service_id}", response_model=schemas.ServiceOut)
def update_service(
    service_id: int,
    service_update: schemas.ServiceUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    service = _get_service_or_404(db, service_id)
    data = service_update.model_dump(exclude_unset=True)
    if "service_type_id" in data:
        _get_service_type_or_404(db, data["service_type_id"])
    for field, value in data.items():
        setattr(service, field, value)
    db.commit()
    db.refresh(service)
    return service


@router.delete("/services/{service_id}")
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_permission(permissions.MANAGE_CATALOG)),
):
    service = _get_service_or_404(db, service_id)
    in_use = (
        db.query(models.BookingService).filter(models.BookingService.service_id == service.id).first()
    )
    if in_use:
        raise HTTPException(status_code=400, detail="Service is attached to bookings")
    db.delete(service)
    db.commit()
    return {"detail": "Service deleted"}
