import math
from typing import Dict, Any, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload
from salon_api.core.errors import NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Service, Category, Image, ImageType, Appointment
from salon_api.models.schemas import ServiceCreate, ServiceUpdate
from salon_api.utils.duration import format_duration, parse_duration, is_valid_duration

SORT_FIELDS = {
    "order": Service.order,
    "price": Service.price,
    "name": Service.name,
}


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def serialize_service(service: Service) -> Dict[str, Any]:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "price": _money(service.price),
        "offerPrice": _money(service.offer_price),
        "duration": format_duration(service.duration),
        "durationMinutes": service.duration,
        "isActive": service.is_active,
        "isHighlight": service.is_highlight,
        "hasOffer": service.has_offer,
        "order": service.order,
        "categoryId": service.category_id,
        "category": {"id": service.category.id, "name": service.category.name} if service.category else None,
        "images": [
            {"id": img.id, "url": img.url, "thumbnailUrl": img.thumbnail_url or img.url, "order": img.order}
            for img in service.images
        ],
        "createdAt": service.created_at.isoformat() if service.created_at else None,
    }


def _load(db: Session, service_id: str) -> Service:
    service = (
        db.query(Service)
        .options(joinedload(Service.category), selectinload(Service.images))
        .filter(Service.id == service_id)
        .first()
    )
    if not service:
        raise NotFoundError("Servicio no encontrado")
    return service


def list_services(
    db: Session,
    category_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_highlight: Optional[bool] = None,
    has_offer: Optional[bool] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "order",
    sort_order: str = "asc",
) -> Dict[str, Any]:
    query = db.query(Service)
    if category_id:
        query = query.filter(Service.category_id == category_id)
    if is_active is not None:
        query = query.filter(Service.is_active == is_active)
    if is_highlight is not None:
        query = query.filter(Service.is_highlight == is_highlight)
    if has_offer is not None:
        query = query.filter(Service.has_offer == has_offer)
    if min_price is not None:
        query = query.filter(Service.price >= min_price)
    if max_price is not None:
        query = query.filter(Service.price <= max_price)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(func.lower(Service.name).like(pattern), func.lower(Service.description).like(pattern)))

    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"sortBy debe ser uno de: {', '.join(SORT_FIELDS)}")
    column = SORT_FIELDS[sort_by]
    ordering = column.desc() if sort_order == "desc" else column.asc()

    total = query.count()
    services = (
        query.options(joinedload(Service.category), selectinload(Service.images))
        .order_by(ordering, Service.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "services": [serialize_service(s) for s in services],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_service(db: Session, service_id: str) -> Dict[str, Any]:
    return serialize_service(_load(db, service_id))


def _duration_minutes(value) -> int:
    if not is_valid_duration(value):
        raise ValidationError("Formato de duración inválido. Use HH:MM o decimal (ej: 1:30 o 1.5)")
    return parse_duration(value)


def _check_offer(has_offer: bool, price: float, offer_price: Optional[float]):
    if not has_offer:
        return
    if offer_price is None:
        raise ValidationError("El precio de oferta es requerido cuando el servicio tiene oferta")
    if offer_price <= 0 or offer_price >= price:
        raise ValidationError("El precio de oferta debe ser menor que el precio regular")


def _attach_images(db: Session, service: Service, image_ids: List[str]):
    images = db.query(Image).filter(Image.id.in_(image_ids)).all() if image_ids else []
    found = {img.id for img in images}
    missing = [i for i in image_ids if i not in found]
    if missing:
        raise ValidationError(f"Imágenes no encontradas: {', '.join(missing)}")
    for position, image_id in enumerate(image_ids):
        image = next(img for img in images if img.id == image_id)
        image.type = ImageType.SERVICE
        image.service_id = service.id
        image.order = position


def create_service(db: Session, data: ServiceCreate) -> Dict[str, Any]:
    duration = _duration_minutes(data.duration)
    _check_offer(data.has_offer, data.price, data.offer_price)
    if not db.get(Category, data.category_id):
        raise ValidationError("Categoría no encontrada")

    last_order = db.query(func.max(Service.order)).filter(Service.category_id == data.category_id).scalar()
    service = Service(
        name=data.name.strip(),
        description=data.description,
        price=data.price,
        offer_price=data.offer_price if data.has_offer else None,
        duration=duration,
        category_id=data.category_id,
        is_active=data.is_active,
        is_highlight=data.is_highlight,
        has_offer=data.has_offer,
        order=(last_order + 1) if last_order is not None else 0,
    )
    db.add(service)
    db.flush()
    _attach_images(db, service, data.images)
    db.commit()
    logger.info(f"💅 Service created: {service.name} ({format_duration(duration)})")
    return serialize_service(_load(db, service.id))


def update_service(db: Session, service_id: str, data: ServiceUpdate) -> Dict[str, Any]:
    service = _load(db, service_id)
    changes = data.model_dump(exclude_unset=True)

    if "duration" in changes and changes["duration"] is not None:
        service.duration = _duration_minutes(changes["duration"])
    if changes.get("category_id") and changes["category_id"] != service.category_id:
        if not db.get(Category, changes["category_id"]):
            raise ValidationError("Categoría no encontrada")
        service.category_id = changes["category_id"]

    for field in ("name", "description", "price", "is_active", "is_highlight", "order"):
        if field in changes and changes[field] is not None:
            setattr(service, field, changes[field].strip() if field == "name" else changes[field])

    if "has_offer" in changes and changes["has_offer"] is not None:
        service.has_offer = changes["has_offer"]
    if "offer_price" in changes:
        service.offer_price = changes["offer_price"]
    if not service.has_offer:
        service.offer_price = None
    _check_offer(
        service.has_offer,
        float(service.price),
        float(service.offer_price) if service.offer_price is not None else None,
    )

    if data.images is not None:
        for image in list(service.images):
            if image.id not in data.images:
                image.service_id = None
        _attach_images(db, service, data.images)

    db.commit()
    db.expire_all()
    logger.info(f"✏️ Service updated: {service.name}")
    return serialize_service(_load(db, service_id))


def update_order(db: Session, items) -> None:
    for item in items:
        service = db.get(Service, item.id)
        if not service:
            raise NotFoundError(f"Servicio no encontrado: {item.id}")
        service.order = item.order
    db.commit()


def delete_service(db: Session, service_id: str) -> None:
    service = db.get(Service, service_id)
    if not service:
        raise NotFoundError("Servicio no encontrado")
    booked = db.query(func.count(Appointment.id)).filter(Appointment.service_id == service_id).scalar()
    if booked:
        raise ValidationError("No se puede eliminar el servicio porque tiene citas asociadas")
    for image in list(service.images):
        image.service_id = None
    db.delete(service)
    db.commit()
    logger.info(f"🗑️ Service deleted: {service.name}")
