import math
from datetime import date, datetime, timedelta
from typing import Dict, Any, Optional
from fastapi import BackgroundTasks
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from salon_api.core.errors import ConflictError, NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Appointment, AppointmentStatus, Service
from salon_api.models.schemas import AppointmentCreate, AppointmentUpdate
from salon_api.services import notification_service
from salon_api.services.availability_service import busy_ranges, overlaps, to_local_naive, get_day
from salon_api.services.catalog_service import serialize_service

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

STATUS_NOTIFICATIONS = {
    AppointmentStatus.CONFIRMED: notification_service.send_appointment_confirmation,
    AppointmentStatus.CANCELLED: notification_service.send_appointment_cancellation,
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS[current]


def serialize_appointment(appointment: Appointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "clientName": appointment.client_name,
        "clientPhone": appointment.client_phone,
        "clientEmail": appointment.client_email,
        "date": appointment.date.isoformat(),
        "status": appointment.status.value,
        "notes": appointment.notes,
        "serviceId": appointment.service_id,
        "service": serialize_service(appointment.service) if appointment.service else None,
        "createdAt": appointment.created_at.isoformat() if appointment.created_at else None,
        "updatedAt": appointment.updated_at.isoformat() if appointment.updated_at else None,
    }


def load_appointment(db: Session, appointment_id: str) -> Appointment:
    appointment = (
        db.query(Appointment)
        .options(joinedload(Appointment.service).joinedload(Service.category))
        .filter(Appointment.id == appointment_id)
        .first()
    )
    if not appointment:
        raise NotFoundError("Cita no encontrada")
    return appointment


def _dispatch(background_tasks: Optional[BackgroundTasks], sender, appointment: Appointment):
    # Loaded attributes stay readable once the request session is closed
    _ = appointment.service.name if appointment.service else None
    if background_tasks is not None:
        background_tasks.add_task(sender, appointment)
        return
    try:
        sender(appointment)
    except Exception as e:
        logger.error(f"❌ Notification failed for appointment {appointment.id}: {e}")


def _ensure_free(db: Session, start: datetime, duration: int, exclude_id: Optional[str] = None):
    end = start + timedelta(minutes=duration)
    busy = busy_ranges(db, start.date(), exclude_id=exclude_id)
    if overlaps(start, end, busy):
        raise ConflictError("Horario no disponible")
    availability = get_day(db, start.date())
    if availability is not None and not availability.is_available:
        raise ConflictError("Horario no disponible")


def list_appointments(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: Optional[AppointmentStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    query = db.query(Appointment)
    if status:
        query = query.filter(Appointment.status == status)
    if start_date:
        query = query.filter(Appointment.date >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(Appointment.date < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
    if search:
        term = search.strip().lower()
        pattern = f"%{term}%"
        query = query.filter(or_(
            func.lower(Appointment.client_name).like(pattern),
            func.lower(Appointment.client_email).like(pattern),
            Appointment.client_phone.like(f"%{search.strip()}%"),
        ))

    total = query.count()
    appointments = (
        query.options(joinedload(Appointment.service).joinedload(Service.category))
        .order_by(Appointment.date.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "data": [serialize_appointment(a) for a in appointments],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_appointment(db: Session, appointment_id: str) -> Dict[str, Any]:
    return serialize_appointment(load_appointment(db, appointment_id))


def create_appointment(db: Session, data: AppointmentCreate, background_tasks: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    service = db.get(Service, data.service_id)
    if not service or not service.is_active:
        raise ValidationError("Servicio no encontrado o inactivo")

    start = to_local_naive(data.date).replace(second=0, microsecond=0)
    _ensure_free(db, start, service.duration)

    appointment = Appointment(
        client_name=data.client_name.strip(),
        client_phone=data.client_phone.strip(),
        client_email=data.client_email.strip() if data.client_email else None,
        date=start,
        notes=data.notes,
        service_id=service.id,
        status=AppointmentStatus.PENDING,
    )
    db.add(appointment)
    db.commit()
    appointment = load_appointment(db, appointment.id)
    logger.info(f"📅 Appointment requested: {appointment.client_name} - {service.name} at {start:%Y-%m-%d %H:%M}")

    _dispatch(background_tasks, notification_service.send_owner_new_booking, appointment)
    return serialize_appointment(appointment)


def update_appointment(db: Session, appointment_id: str, data: AppointmentUpdate, background_tasks: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    appointment = load_appointment(db, appointment_id)
    changes = data.model_dump(exclude_unset=True)
    previous_status = appointment.status

    target_status = changes.get("status")
    if target_status is not None and not can_transition(previous_status, target_status):
        raise ValidationError(
            f"Transición de estado inválida: {previous_status.value} -> {target_status.value}"
        )

    if changes.get("service_id") and changes["service_id"] != appointment.service_id:
        service = db.get(Service, changes["service_id"])
        if not service:
            raise ValidationError("Servicio no encontrado")
        appointment.service_id = service.id
        appointment.service = service

    if changes.get("date") is not None or "service_id" in changes:
        start = to_local_naive(changes.get("date") or appointment.date).replace(second=0, microsecond=0)
        if (target_status or previous_status) not in (AppointmentStatus.CANCELLED,):
            _ensure_free(db, start, appointment.service.duration, exclude_id=appointment.id)
        appointment.date = start

    if "notes" in changes:
        appointment.notes = changes["notes"]
    if target_status is not None:
        appointment.status = target_status

    db.commit()
    appointment = load_appointment(db, appointment_id)

    if target_status is not None and target_status != previous_status:
        logger.info(f"🔄 Appointment {appointment_id}: {previous_status.value} -> {target_status.value}")
        sender = STATUS_NOTIFICATIONS.get(target_status)
        if sender:
            _dispatch(background_tasks, sender, appointment)
    return serialize_appointment(appointment)


def delete_appointment(db: Session, appointment_id: str) -> None:
    appointment = db.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Cita no encontrada")
    db.delete(appointment)
    db.commit()
    logger.info(f"🗑️ Appointment deleted: {appointment_id}")
