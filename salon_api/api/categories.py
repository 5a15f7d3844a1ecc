from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import CategoryCreate, CategoryUpdate, CategoryOrderUpdate
from salon_api.services import category_service

router = APIRouter()


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    return category_service.list_categories(db)


@router.put("/order/update", dependencies=[Depends(require_admin)])
def update_order(req: CategoryOrderUpdate, db: Session = Depends(get_db)):
    return category_service.update_order(db, req.categories)


@router.get("/{category_id}")
def get_category(category_id: str, db: Session = Depends(get_db)):
    return category_service.get_category(db, category_id)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_category(req: CategoryCreate, db: Session = Depends(get_db)):
    return category_service.create_category(db, req.name)


@router.put("/{category_id}", dependencies=[Depends(require_admin)])
def update_category(category_id: str, req: CategoryUpdate, db: Session = Depends(get_db)):
    return category_service.update_category(db, category_id, req.name, req.order)


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: str, db: Session = Depends(get_db)):
    category_service.delete_category(db, category_id)
    return {"message": "Categoría eliminada exitosamente"}
