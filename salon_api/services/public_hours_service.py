import re
from collections import defaultdict
from datetime import date
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session, joinedload
from salon_api.core.config_loader import load_salon_config
from salon_api.core.errors import ConflictError, NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Availability, PublicHour

HOUR_PATTERN = re.compile(r"^([01]\d|2[0-3]):(00|30)$")


def validate_hour(hour: str) -> str:
    """Public hours are half-hour marks inside the configured range (06:00-23:00 by default)."""
    hour = (hour or "").strip()
    if not HOUR_PATTERN.match(hour):
        raise ValidationError(f"Hora inválida: {hour!r}. Use HH:00 o HH:30")
    bounds = load_salon_config().get("public_hours_range", {"start": "06:00", "end": "23:00"})
    if not bounds["start"] <= hour <= bounds["end"]:
        raise ValidationError(f"La hora {hour} está fuera del rango permitido ({bounds['start']} - {bounds['end']})")
    return hour


def serialize_public_hour(ph: PublicHour) -> Dict[str, Any]:
    return {
        "id": ph.id,
        "availabilityId": ph.availability_id,
        "date": ph.availability.date.isoformat() if ph.availability else None,
        "hour": ph.hour,
        "isAvailable": ph.is_available,
    }


def _query(db: Session):
    return db.query(PublicHour).join(Availability).options(joinedload(PublicHour.availability))


def create_public_hour(db: Session, availability_id: str, hour: str, is_available: bool = True) -> Dict[str, Any]:
    hour = validate_hour(hour)
    if not db.get(Availability, availability_id):
        raise NotFoundError("Disponibilidad no encontrada")
    exists = db.query(PublicHour).filter(
        PublicHour.availability_id == availability_id, PublicHour.hour == hour
    ).first()
    if exists:
        raise ConflictError("Ya existe ese horario para la fecha")
    public_hour = PublicHour(availability_id=availability_id, hour=hour, is_available=is_available)
    db.add(public_hour)
    db.commit()
    db.refresh(public_hour)
    return serialize_public_hour(public_hour)


def get_by_date(db: Session, day: date) -> List[Dict[str, Any]]:
    rows = _query(db).filter(Availability.date == day).order_by(PublicHour.hour).all()
    return [serialize_public_hour(r) for r in rows]


def get_by_range(db: Session, start: date, end: date) -> List[Dict[str, Any]]:
    if start > end:
        raise ValidationError("La fecha de inicio debe ser anterior o igual a la fecha de fin")
    rows = (
        _query(db)
        .filter(Availability.date >= start, Availability.date <= end)
        .order_by(Availability.date, PublicHour.hour)
        .all()
    )
    return [serialize_public_hour(r) for r in rows]


def grouped_by_date(db: Session, start: date, end: date, only_public: bool = True) -> Dict[str, List[str]]:
    """{'2025-03-01': ['09:00', '09:30'], ...}"""
    if start > end:
        raise ValidationError("La fecha de inicio debe ser anterior o igual a la fecha de fin")
    query = _query(db).filter(Availability.date >= start, Availability.date <= end)
    if only_public:
        query = query.filter(Availability.is_available.is_(True), PublicHour.is_available.is_(True))
    grouped: Dict[str, List[str]] = defaultdict(list)
    for row in query.order_by(Availability.date, PublicHour.hour).all():
        grouped[row.availability.date.isoformat()].append(row.hour)
    return dict(grouped)


def public_hours_for_date(db: Session, day: date) -> List[str]:
    rows = (
        _query(db)
        .filter(Availability.date == day, Availability.is_available.is_(True), PublicHour.is_available.is_(True))
        .order_by(PublicHour.hour)
        .all()
    )
    return [r.hour for r in rows]


def is_hour_available(db: Session, day: date, hour: str) -> bool:
    return hour in public_hours_for_date(db, day)


def update_public_hour(db: Session, public_hour_id: str, hour: Optional[str] = None, is_available: Optional[bool] = None) -> Dict[str, Any]:
    public_hour = db.get(PublicHour, public_hour_id)
    if not public_hour:
        raise NotFoundError("Horario público no encontrado")
    if hour is not None:
        hour = validate_hour(hour)
        clash = db.query(PublicHour).filter(
            PublicHour.availability_id == public_hour.availability_id,
            PublicHour.hour == hour,
            PublicHour.id != public_hour_id,
        ).first()
        if clash:
            raise ConflictError("Ya existe ese horario para la fecha")
        public_hour.hour = hour
    if is_available is not None:
        public_hour.is_available = is_available
    db.commit()
    db.refresh(public_hour)
    return serialize_public_hour(public_hour)


def delete_public_hour(db: Session, public_hour_id: str) -> None:
    public_hour = db.get(PublicHour, public_hour_id)
    if not public_hour:
        raise NotFoundError("Horario público no encontrado")
    db.delete(public_hour)
    db.commit()


def set_multiple(db: Session, day: date, hours: List[str]) -> List[Dict[str, Any]]:
    """Enables the day if needed and upserts each hour as available."""
    cleaned = sorted({validate_hour(h) for h in hours})
    if not cleaned:
        raise ValidationError("Debe enviar al menos un horario")

    availability = db.query(Availability).filter(Availability.date == day).first()
    if not availability:
        availability = Availability(date=day, is_available=True)
        db.add(availability)
        db.flush()
    elif not availability.is_available:
        availability.is_available = True

    existing = {ph.hour: ph for ph in availability.public_hours}
    for hour in cleaned:
        if hour in existing:
            existing[hour].is_available = True
        else:
            db.add(PublicHour(availability_id=availability.id, hour=hour, is_available=True))
    db.commit()
    logger.info(f"🕒 {len(cleaned)} public hours set for {day}")
    return get_by_date(db, day)
