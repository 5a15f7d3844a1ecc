import calendar
from datetime import date, datetime, timedelta
from typing import Dict, Any, Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session, joinedload
from salon_api.core.config import settings
from salon_api.core.config_loader import load_salon_config, get_business_hours, get_break
from salon_api.core.errors import ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Availability, Appointment, AppointmentStatus, PublicHour

BLOCKING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)
PUBLIC_HOUR_STEP = 30
DEFAULT_DURATION = 60

Range = Tuple[datetime, datetime]


def salon_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """Current salon wall-clock time as a naive datetime."""
    return datetime.now(salon_tz()).replace(tzinfo=None)


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(salon_tz()).replace(tzinfo=None)


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Fecha inválida, use el formato YYYY-MM-DD")


def _at(day: date, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime.combine(day, datetime.min.time()).replace(hour=int(hours), minute=int(minutes))


def overlaps(start: datetime, end: datetime, ranges: Iterable[Range]) -> bool:
    return any(start < busy_end and busy_start < end for busy_start, busy_end in ranges)


def regular_grid(day: date, duration: int, config: Dict[str, Any]) -> List[datetime]:
    """Start times on the regular schedule: every interval from open, ending by close, not inside the break."""
    hours = get_business_hours(config, day.weekday())
    if not hours:
        return []
    opening, closing = _at(day, hours["start"]), _at(day, hours["end"])
    pause = get_break(config)
    pause_start = _at(day, pause["start"]) if pause else None
    pause_end = _at(day, pause["end"]) if pause else None
    step = timedelta(minutes=config.get("slot_interval_minutes", 15))

    starts = []
    current = opening
    while current + timedelta(minutes=duration) <= closing:
        if not (pause_start and pause_start <= current < pause_end):
            starts.append(current)
        current += step
    return starts


def public_hours_grid(day: date, duration: int, hours: Sequence[str]) -> List[datetime]:
    """Start times where every half hour the service occupies is a published hour."""
    published = {_at(day, h) for h in hours}
    starts = []
    for start in sorted(published):
        needed = range(0, duration, PUBLIC_HOUR_STEP)
        if all(start + timedelta(minutes=offset) in published for offset in needed):
            starts.append(start)
    return starts


def compute_slots(
    day: date,
    duration: int,
    config: Dict[str, Any],
    busy: Sequence[Range] = (),
    public_hours: Optional[Sequence[str]] = None,
    day_enabled: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Returns the bookable slots of a day.
    day_enabled: False when the admin disabled the day, None when nothing was configured.
    public_hours: the day's published hours, or None to use the regular schedule.
    """
    if day_enabled is False:
        return []
    if public_hours:
        candidates = public_hours_grid(day, duration, public_hours)
    else:
        candidates = regular_grid(day, duration, config)

    slots = []
    length = timedelta(minutes=duration)
    for start in candidates:
        end = start + length
        if now is not None and start <= now:
            continue
        if overlaps(start, end, busy):
            continue
        slots.append({
            "date": day.isoformat(),
            "startTime": start.strftime("%H:%M"),
            "endTime": end.strftime("%H:%M"),
            "available": True,
        })
    return slots


def busy_ranges(db: Session, day: date, exclude_id: Optional[str] = None) -> List[Range]:
    start = datetime.combine(day, datetime.min.time())
    # Previous evening included so long services crossing midnight still block
    query = (
        db.query(Appointment)
        .options(joinedload(Appointment.service))
        .filter(
            Appointment.date >= start - timedelta(hours=12),
            Appointment.date < start + timedelta(days=1),
            Appointment.status.in_(BLOCKING_STATUSES),
        )
    )
    if exclude_id:
        query = query.filter(Appointment.id != exclude_id)
    ranges = []
    for appointment in query.all():
        length = appointment.service.duration if appointment.service else DEFAULT_DURATION
        ranges.append((appointment.date, appointment.date + timedelta(minutes=length)))
    return ranges


def get_day(db: Session, day: date) -> Optional[Availability]:
    return db.query(Availability).filter(Availability.date == day).first()


def published_hours(db: Session, day: date) -> List[str]:
    rows = (
        db.query(PublicHour.hour)
        .join(Availability)
        .filter(Availability.date == day, Availability.is_available.is_(True), PublicHour.is_available.is_(True))
        .order_by(PublicHour.hour)
        .all()
    )
    return [row[0] for row in rows]


def get_available_slots(db: Session, day: date, duration: int = DEFAULT_DURATION) -> List[Dict[str, Any]]:
    if duration <= 0:
        raise ValidationError("La duración debe ser mayor a 0")
    availability = get_day(db, day)
    current = now_local()
    if day < current.date():
        return []
    slots = compute_slots(
        day,
        duration,
        load_salon_config(),
        busy=busy_ranges(db, day),
        public_hours=published_hours(db, day),
        day_enabled=availability.is_available if availability else None,
        now=current if day == current.date() else None,
    )
    logger.debug(f"🔍 {len(slots)} slots for {day} ({duration} min)")
    return slots


def list_available_dates(db: Session, month: Optional[int] = None, year: Optional[int] = None) -> List[str]:
    query = db.query(Availability).filter(Availability.is_available.is_(True))
    if month is not None or year is not None:
        today = now_local().date()
        year = year or today.year
        month = month or today.month
        if not 1 <= month <= 12:
            raise ValidationError("Mes inválido")
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        query = query.filter(Availability.date >= first, Availability.date <= last)
    else:
        query = query.filter(Availability.date >= now_local().date())
    return [row.date.isoformat() for row in query.order_by(Availability.date).all()]


def _set_day(db: Session, day: date, available: bool) -> Availability:
    availability = get_day(db, day)
    if availability:
        availability.is_available = available
    else:
        availability = Availability(date=day, is_available=available)
        db.add(availability)
    return availability


def serialize_day(availability: Availability) -> Dict[str, Any]:
    return {"id": availability.id, "date": availability.date.isoformat(), "isAvailable": availability.is_available}


def enable_date(db: Session, day: date) -> Dict[str, Any]:
    availability = _set_day(db, day, True)
    db.commit()
    db.refresh(availability)
    logger.info(f"📅 Day enabled: {day}")
    return serialize_day(availability)


def disable_date(db: Session, day: date) -> Dict[str, Any]:
    availability = _set_day(db, day, False)
    db.commit()
    db.refresh(availability)
    logger.info(f"🚫 Day disabled: {day}")
    return serialize_day(availability)


def enable_range(db: Session, start: date, end: date) -> List[Dict[str, Any]]:
    if start > end:
        raise ValidationError("La fecha de inicio debe ser anterior o igual a la fecha de fin")
    days = []
    current = start
    while current <= end:
        days.append(_set_day(db, current, True))
        current += timedelta(days=1)
    db.commit()
    logger.info(f"📅 Days enabled from {start} to {end} ({len(days)})")
    return [serialize_day(d) for d in days]


def remove_date(db: Session, day: date) -> bool:
    availability = get_day(db, day)
    if not availability:
        return False
    db.delete(availability)
    db.commit()
    logger.info(f"🗑️ Availability removed for {day}")
    return True
