from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from salon_api.models.db_models import Appointment, AppointmentStatus, Image, Review, Service
from salon_api.services.availability_service import now_local


def _month_bounds(now: datetime):
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = (start + timedelta(days=32)).replace(day=1)
    return start, end


def get_stats(db: Session, now: Optional[datetime] = None, top: int = 5) -> Dict[str, Any]:
    now = now or now_local()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)
    month_start, month_end = _month_bounds(now)

    today = db.query(Appointment).filter(Appointment.date >= day_start, Appointment.date < day_end).all()

    completed = (
        db.query(Appointment)
        .options(joinedload(Appointment.service))
        .filter(
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.date >= month_start,
            Appointment.date < month_end,
        )
        .all()
    )
    income = sum(a.service.effective_price for a in completed if a.service)

    per_service = defaultdict(lambda: {"count": 0, "income": 0.0})
    for appointment in completed:
        if not appointment.service:
            continue
        entry = per_service[appointment.service.name]
        entry["count"] += 1
        entry["income"] += appointment.service.effective_price
    top_services = sorted(
        ({"name": name, **values} for name, values in per_service.items()),
        key=lambda item: (-item["count"], -item["income"], item["name"]),
    )[:top]

    month_phones = {
        phone for (phone,) in db.query(Appointment.client_phone).filter(
            Appointment.date >= month_start, Appointment.date < month_end,
            Appointment.status != AppointmentStatus.CANCELLED,
        ).distinct()
    }
    returning = {
        phone for (phone,) in db.query(Appointment.client_phone).filter(
            Appointment.date < month_start,
            Appointment.client_phone.in_(month_phones),
        ).distinct()
    } if month_phones else set()

    upcoming = (
        db.query(Appointment)
        .options(joinedload(Appointment.service))
        .filter(
            Appointment.date >= now,
            Appointment.status.in_((AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)),
        )
        .order_by(Appointment.date.asc())
        .limit(5)
        .all()
    )

    return {
        "appointments": {
            "today": len(today),
            "confirmed": sum(1 for a in today if a.status == AppointmentStatus.CONFIRMED),
            "pending": sum(1 for a in today if a.status == AppointmentStatus.PENDING),
        },
        "services": {
            "active": db.query(func.count(Service.id)).filter(Service.is_active.is_(True)).scalar(),
        },
        "reviews": {
            "total": db.query(func.count(Review.id)).scalar(),
            "pending": db.query(func.count(Review.id)).filter(Review.is_approved.is_(False)).scalar(),
            "unread": db.query(func.count(Review.id)).filter(Review.is_read.is_(False)).scalar(),
        },
        "images": {
            "active": db.query(func.count(Image.id)).filter(Image.is_active.is_(True)).scalar(),
        },
        "income": {
            "month": round(income, 2),
            "completedAppointments": len(completed),
            "averagePerAppointment": round(income / len(completed), 2) if completed else 0.0,
        },
        "clients": {
            "thisMonth": len(month_phones),
            "new": len(month_phones - returning),
            "returning": len(returning),
        },
        "topServices": top_services,
        "upcoming": [
            {
                "id": a.id,
                "clientName": a.client_name,
                "date": a.date.isoformat(),
                "status": a.status.value,
                "serviceName": a.service.name if a.service else None,
            }
            for a in upcoming
        ],
    }
