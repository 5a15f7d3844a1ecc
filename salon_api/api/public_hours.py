from datetime import date
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import PublicHourCreate, PublicHourUpdate, PublicHoursMultiple
from salon_api.services import public_hours_service

router = APIRouter()
admin = [Depends(require_admin)]


# Client endpoints
@router.get("/client/grouped")
def client_grouped(start_date: date = Query(..., alias="startDate"), end_date: date = Query(..., alias="endDate"), db: Session = Depends(get_db)):
    return public_hours_service.grouped_by_date(db, start_date, end_date, only_public=True)


@router.get("/client/date/{day}")
def client_by_date(day: date, db: Session = Depends(get_db)):
    return public_hours_service.public_hours_for_date(db, day)


@router.get("/client/check/{day}/{hour}")
def client_check(day: date, hour: str, db: Session = Depends(get_db)):
    return {"date": day.isoformat(), "hour": hour, "isAvailable": public_hours_service.is_hour_available(db, day, hour)}


# Admin endpoints
@router.post("", status_code=201, dependencies=admin)
def create(req: PublicHourCreate, db: Session = Depends(get_db)):
    return public_hours_service.create_public_hour(db, req.availability_id, req.hour, req.is_available)


@router.post("/multiple", status_code=201, dependencies=admin)
def create_multiple(req: PublicHoursMultiple, db: Session = Depends(get_db)):
    return public_hours_service.set_multiple(db, req.date, req.hours)


@router.get("/date/{day}", dependencies=admin)
def by_date(day: date, db: Session = Depends(get_db)):
    return public_hours_service.get_by_date(db, day)


@router.get("/range", dependencies=admin)
def by_range(start_date: date = Query(..., alias="startDate"), end_date: date = Query(..., alias="endDate"), db: Session = Depends(get_db)):
    return public_hours_service.get_by_range(db, start_date, end_date)


@router.get("/grouped", dependencies=admin)
def grouped(start_date: date = Query(..., alias="startDate"), end_date: date = Query(..., alias="endDate"), db: Session = Depends(get_db)):
    return public_hours_service.grouped_by_date(db, start_date, end_date, only_public=False)


@router.get("/check/{day}/{hour}", dependencies=admin)
def check(day: date, hour: str, db: Session = Depends(get_db)):
    return {"date": day.isoformat(), "hour": hour, "isAvailable": public_hours_service.is_hour_available(db, day, hour)}


@router.put("/{public_hour_id}", dependencies=admin)
def update(public_hour_id: str, req: PublicHourUpdate, db: Session = Depends(get_db)):
    return public_hours_service.update_public_hour(db, public_hour_id, req.hour, req.is_available)


@router.delete("/{public_hour_id}", status_code=204, dependencies=admin)
def delete(public_hour_id: str, db: Session = Depends(get_db)):
    public_hours_service.delete_public_hour(db, public_hour_id)
    return Response(status_code=204)
