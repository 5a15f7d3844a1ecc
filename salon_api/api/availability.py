from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from salon_api.core.errors import ValidationError
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import AvailabilityDay, AvailabilityRange
from salon_api.services import availability_service

router = APIRouter()


@router.get("")
def available_slots(
    date: Optional[str] = None,
    duration: int = Query(availability_service.DEFAULT_DURATION, ge=15, le=600),
    db: Session = Depends(get_db),
):
    if not date:
        raise ValidationError("La fecha es requerida")
    day = availability_service.parse_date(date)
    return availability_service.get_available_slots(db, day, duration)


@router.get("/dates")
def available_dates(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    db: Session = Depends(get_db),
):
    return availability_service.list_available_dates(db, month, year)


@router.post("/admin/enable", dependencies=[Depends(require_admin)])
def enable(req: AvailabilityDay, db: Session = Depends(get_db)):
    return {"message": "Fecha habilitada", "data": availability_service.enable_date(db, req.date)}


@router.post("/admin/disable", dependencies=[Depends(require_admin)])
def disable(req: AvailabilityDay, db: Session = Depends(get_db)):
    return {"message": "Fecha deshabilitada", "data": availability_service.disable_date(db, req.date)}


@router.post("/admin/enable-range", dependencies=[Depends(require_admin)])
def enable_range(req: AvailabilityRange, db: Session = Depends(get_db)):
    days = availability_service.enable_range(db, req.start_date, req.end_date)
    return {"message": f"{len(days)} fechas habilitadas", "data": days}


@router.post("/admin/remove", dependencies=[Depends(require_admin)])
def remove(req: AvailabilityDay, db: Session = Depends(get_db)):
    removed = availability_service.remove_date(db, req.date)
    message = "Disponibilidad eliminada" if removed else "No había disponibilidad configurada para esa fecha"
    return {"message": message, "removed": removed}
