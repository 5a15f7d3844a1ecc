import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from salon_api.core.config import settings
from salon_api.core.errors import NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Image, ImageType, Service
from salon_api.models.schemas import ImageUpdate
from salon_api.services import image_optimizer, storage_service

# (content, filename, content_type)
Upload = Tuple[bytes, str, Optional[str]]


def is_display_service(image: Image) -> bool:
    return image.type == ImageType.SERVICE and bool(image.display_service_name) and not image.service_id


def format_image(image: Image) -> Dict[str, Any]:
    pair = image.before_after_pair or None
    data = {
        "id": image.id,
        "url": image.url,
        "type": image.type.value,
        "title": image.title,
        "description": image.description,
        "thumbnailUrl": image.thumbnail_url or image.url,
        "tags": image.tags or [],
        "order": image.order,
        "isActive": image.is_active,
        "isHighlight": image.is_highlight,
        "beforeAfterPair": pair,
        "hasAfterImage": bool(pair and pair.get("after")),
        "isAfterImage": bool(image.is_after_image),
        "beforeImageId": image.before_image_id,
        "createdAt": image.created_at.isoformat() if image.created_at else None,
    }
    if is_display_service(image):
        data.update({
            "displayServiceName": image.display_service_name,
            "displayServiceCategory": image.display_service_category,
            "serviceName": image.display_service_name,
            "category": image.display_service_category or image.category,
        })
    else:
        service = image.service
        data.update({
            "category": image.category or (service.category.name if service and service.category else None),
            "serviceId": image.service_id,
            "serviceName": service.name if service else None,
            "servicePrice": float(service.price) if service else None,
        })
    return data


def _base_query(db: Session):
    return db.query(Image).options(joinedload(Image.service).joinedload(Service.category))


def _not_after_image():
    return or_(Image.is_after_image.is_(None), Image.is_after_image.is_(False))


def list_images(db: Session, is_active: Optional[bool] = None, image_type: Optional[ImageType] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
    query = _base_query(db).filter(_not_after_image())
    if is_active is not None:
        query = query.filter(Image.is_active == is_active)
    if image_type:
        query = query.filter(Image.type == image_type)
    if category:
        query = query.filter(func.lower(Image.category) == category.strip().lower())
    return [format_image(i) for i in query.order_by(Image.type, Image.order, Image.created_at.desc()).all()]


def gallery(db: Session) -> List[Dict[str, Any]]:
    images = (
        _base_query(db)
        .filter(Image.is_active.is_(True), _not_after_image(), Image.type != ImageType.TEMP)
        .order_by(Image.is_highlight.desc(), Image.order, Image.created_at.desc())
        .all()
    )
    # Service images only appear as display services
    visible = [i for i in images if i.type != ImageType.SERVICE or is_display_service(i)]
    return [format_image(i) for i in visible]


def before_after(db: Session) -> List[Dict[str, Any]]:
    images = (
        _base_query(db)
        .filter(Image.type == ImageType.BEFORE_AFTER, Image.is_active.is_(True), _not_after_image())
        .order_by(Image.order, Image.created_at.desc())
        .all()
    )
    return [format_image(i) for i in images]


def by_service(db: Session, service_id: str) -> List[Dict[str, Any]]:
    images = _base_query(db).filter(Image.service_id == service_id).order_by(Image.order).all()
    return [format_image(i) for i in images]


def _get(db: Session, image_id: str) -> Image:
    image = _base_query(db).filter(Image.id == image_id).first()
    if not image:
        raise NotFoundError("Imagen no encontrada")
    return image


def get_image(db: Session, image_id: str) -> Dict[str, Any]:
    return format_image(_get(db, image_id))


def validate_upload(content: bytes, content_type: Optional[str]):
    if not content:
        raise ValidationError("No se ha proporcionado ninguna imagen")
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Solo se permiten archivos de imagen")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError("La imagen excede el tamaño máximo permitido (5MB)")


def parse_tags(raw: Optional[str]) -> List[str]:
    """Accepts a JSON array string or a comma separated list."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw.split(",")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValidationError("Formato de etiquetas inválido")
    return [str(tag).strip() for tag in value if str(tag).strip()]


async def _store_optimized(upload: Upload, image_type: ImageType, service_name: Optional[str] = None) -> Dict[str, Any]:
    content, filename, content_type = upload
    validate_upload(content, content_type)
    optimized, size = await asyncio.to_thread(image_optimizer.optimize, content, image_type)
    stored = await storage_service.store(optimized, image_type, filename, service_name)
    thumbnail_url = None
    if len(content) > settings.THUMBNAIL_THRESHOLD:
        thumbnail = await asyncio.to_thread(image_optimizer.make_thumbnail, content)
        thumb = await storage_service.store(thumbnail, image_type, f"thumb_{filename}", service_name)
        thumbnail_url = thumb["url"]
    return {
        "url": stored["url"],
        "thumbnail_url": thumbnail_url,
        "dimensions": {"width": size[0], "height": size[1], "size": len(optimized), "mimetype": "image/webp"},
    }


def _parse_type(raw: Optional[str]) -> ImageType:
    try:
        return ImageType((raw or ImageType.GALLERY.value).upper())
    except ValueError:
        raise ValidationError("Tipo de imagen inválido")


def _before_image_for(db: Session, fields: Dict[str, Any]) -> Optional[Image]:
    """Resolves the "before" image an after-image is linked to."""
    if not fields.get("is_after_image"):
        return None
    before_id = fields.get("before_image_id")
    before = db.get(Image, before_id) if before_id else None
    if not before or before.type != ImageType.BEFORE_AFTER or before.is_after_image:
        raise ValidationError("Una imagen 'después' requiere una imagen 'antes' válida")
    return before


async def create_image(db: Session, upload: Upload, fields: Dict[str, Any]) -> Dict[str, Any]:
    image_type = _parse_type(fields.get("type"))
    before = None
    if image_type == ImageType.BEFORE_AFTER:
        before = _before_image_for(db, fields)
        if not before:
            raise ValidationError("Una imagen antes/después requiere dos archivos o una imagen 'antes' relacionada")
    service = None
    if fields.get("service_id"):
        service = db.get(Service, fields["service_id"])
        if not service:
            raise ValidationError("Servicio no encontrado")

    stored = await _store_optimized(upload, image_type, service.name if service else fields.get("display_service_name"))
    next_order = db.query(func.max(Image.order)).filter(Image.type == image_type).scalar()
    image = Image(
        url=stored["url"],
        thumbnail_url=stored["thumbnail_url"],
        dimensions=stored["dimensions"],
        type=image_type,
        title=fields.get("title"),
        description=fields.get("description"),
        category=fields.get("category"),
        tags=parse_tags(fields.get("tags")),
        is_active=fields.get("is_active", True),
        is_highlight=fields.get("is_highlight", False),
        service_id=service.id if service else None,
        order=(next_order + 1) if next_order is not None else 0,
    )
    if image_type == ImageType.SERVICE:
        image.display_service_name = fields.get("display_service_name")
        image.display_service_category = fields.get("display_service_category")
    if before:
        image.is_after_image = True
        image.before_image_id = before.id
        before.before_after_pair = {"before": before.url, "after": image.url}
    db.add(image)
    db.commit()
    logger.info(f"🖼️ Image created ({image_type.value}): {image.url}")
    return format_image(_get(db, image.id))


async def create_before_after(db: Session, uploads: List[Upload], fields: Dict[str, Any]) -> Dict[str, Any]:
    if len(uploads) != 2:
        raise ValidationError("Se requieren exactamente dos imágenes (antes y después)")
    for content, _, content_type in uploads:
        validate_upload(content, content_type)

    before = await _store_optimized(uploads[0], ImageType.BEFORE_AFTER)
    after = await _store_optimized(uploads[1], ImageType.BEFORE_AFTER)
    next_order = db.query(func.max(Image.order)).filter(Image.type == ImageType.BEFORE_AFTER).scalar()
    image = Image(
        url=before["url"],
        thumbnail_url=before["thumbnail_url"],
        dimensions=before["dimensions"],
        type=ImageType.BEFORE_AFTER,
        title=fields.get("title"),
        description=fields.get("description"),
        category=fields.get("category"),
        tags=parse_tags(fields.get("tags")),
        is_active=fields.get("is_active", True),
        is_highlight=fields.get("is_highlight", False),
        before_after_pair={"before": before["url"], "after": after["url"]},
        order=(next_order + 1) if next_order is not None else 0,
    )
    db.add(image)
    db.commit()
    logger.info(f"🖼️ Before/after pair created: {image.id}")
    return format_image(_get(db, image.id))


def update_image(db: Session, image_id: str, data: ImageUpdate) -> Dict[str, Any]:
    image = _get(db, image_id)
    changes = data.model_dump(exclude_unset=True)

    if image.type == ImageType.SERVICE:
        for field in ("display_service_name", "display_service_category", "category"):
            if field in changes:
                setattr(image, field, changes[field])
    else:
        if "service_id" in changes and changes["service_id"]:
            if not db.get(Service, changes["service_id"]):
                raise ValidationError("Servicio no encontrado")
        for field in ("category", "title", "description", "service_id"):
            if field in changes:
                setattr(image, field, changes[field])

    for field in ("is_active", "is_highlight", "order", "tags"):
        if field in changes and changes[field] is not None:
            setattr(image, field, changes[field])
    if "before_after_pair" in changes:
        pair = changes["before_after_pair"]
        if image.type == ImageType.BEFORE_AFTER and not pair:
            raise ValidationError("Una imagen antes/después requiere ambas URLs")
        image.before_after_pair = pair

    db.commit()
    db.expire_all()
    return format_image(_get(db, image_id))


async def delete_image(db: Session, image_id: str) -> None:
    image = _get(db, image_id)
    urls = {image.url, image.thumbnail_url}
    if image.before_after_pair:
        urls.update(image.before_after_pair.values())
    db.delete(image)
    db.commit()
    for url in filter(None, urls):
        await storage_service.remove(url)
    logger.info(f"🗑️ Image deleted: {image_id}")
