from typing import Dict, Any, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from salon_api.core.errors import ConflictError, NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Category, Service


def serialize_category(category: Category, services_count: Optional[int] = None) -> Dict[str, Any]:
    if services_count is None:
        services_count = len(category.services)
    return {
        "id": category.id,
        "name": category.name,
        "order": category.order,
        "servicesCount": services_count,
        "createdAt": category.created_at.isoformat() if category.created_at else None,
    }


def _counts(db: Session) -> Dict[str, int]:
    rows = db.query(Service.category_id, func.count(Service.id)).group_by(Service.category_id).all()
    return {category_id: count for category_id, count in rows}


def list_categories(db: Session) -> List[Dict[str, Any]]:
    counts = _counts(db)
    categories = db.query(Category).order_by(Category.order.asc(), Category.name.asc()).all()
    return [serialize_category(c, counts.get(c.id, 0)) for c in categories]


def get_category(db: Session, category_id: str) -> Dict[str, Any]:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Categoría no encontrada")
    return serialize_category(category)


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("El nombre de la categoría es requerido")
    return name


def create_category(db: Session, name: str) -> Dict[str, Any]:
    name = _clean_name(name)
    if db.query(Category).filter(func.lower(Category.name) == name.lower()).first():
        raise ConflictError("Ya existe una categoría con ese nombre")

    max_order = db.query(func.max(Category.order)).scalar()
    category = Category(name=name, order=(max_order + 1) if max_order is not None else 0)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(f"🗂️ Category created: {category.name}")
    return serialize_category(category, 0)


def update_category(db: Session, category_id: str, name: Optional[str] = None, order: Optional[int] = None) -> Dict[str, Any]:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Categoría no encontrada")

    if name is not None:
        name = _clean_name(name)
        duplicate = db.query(Category).filter(
            func.lower(Category.name) == name.lower(), Category.id != category_id
        ).first()
        if duplicate:
            raise ConflictError("Ya existe una categoría con ese nombre")
        category.name = name
    if order is not None:
        category.order = order

    db.commit()
    db.refresh(category)
    return serialize_category(category)


def update_order(db: Session, items) -> List[Dict[str, Any]]:
    for item in items:
        category = db.get(Category, item.id)
        if not category:
            raise NotFoundError(f"Categoría no encontrada: {item.id}")
        category.order = item.order
    db.commit()
    return list_categories(db)


def delete_category(db: Session, category_id: str) -> None:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Categoría no encontrada")
    in_use = db.query(func.count(Service.id)).filter(Service.category_id == category_id).scalar()
    if in_use:
        raise ValidationError("No se puede eliminar la categoría porque tiene servicios asociados")
    db.delete(category)
    db.commit()
    logger.info(f"🗑️ Category deleted: {category.name}")
