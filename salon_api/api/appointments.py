from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.db_models import AppointmentStatus
from salon_api.models.schemas import AppointmentCreate, AppointmentUpdate, AppointmentStatusUpdate
from salon_api.services import appointment_service

router = APIRouter()


@router.get("", dependencies=[Depends(require_admin)])
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[AppointmentStatus] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return appointment_service.list_appointments(db, page, limit, status, start_date, end_date, search)


@router.get("/{appointment_id}", dependencies=[Depends(require_admin)])
def get_appointment(appointment_id: str, db: Session = Depends(get_db)):
    return appointment_service.get_appointment(db, appointment_id)


@router.post("", status_code=201)
def create_appointment(req: AppointmentCreate, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    appointment = appointment_service.create_appointment(db, req, background_tasks)
    return {"message": "Cita creada exitosamente", "data": appointment}


@router.put("/{appointment_id}", dependencies=[Depends(require_admin)])
def update_appointment(appointment_id: str, req: AppointmentUpdate, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    appointment = appointment_service.update_appointment(db, appointment_id, req, background_tasks)
    return {"message": "Cita actualizada exitosamente", "data": appointment}


@router.patch("/{appointment_id}/status", dependencies=[Depends(require_admin)])
def update_status(appointment_id: str, req: AppointmentStatusUpdate, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    update = AppointmentUpdate(status=req.status)
    appointment = appointment_service.update_appointment(db, appointment_id, update, background_tasks)
    return {"message": "Estado actualizado exitosamente", "data": appointment}


@router.delete("/{appointment_id}", dependencies=[Depends(require_admin)])
def delete_appointment(appointment_id: str, db: Session = Depends(get_db)):
    appointment_service.delete_appointment(db, appointment_id)
    return {"message": "Cita eliminada exitosamente"}
