from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import ServiceCreate, ServiceUpdate, ServiceOrderUpdate
from salon_api.services import catalog_service

router = APIRouter()


@router.get("")
def list_services(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_highlight: Optional[bool] = Query(None, alias="isHighlight"),
    has_offer: Optional[bool] = Query(None, alias="hasOffer"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["order", "price", "name"] = Query("order", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("asc", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    return catalog_service.list_services(
        db,
        category_id=category_id,
        is_active=is_active,
        is_highlight=is_highlight,
        has_offer=has_offer,
        min_price=min_price,
        max_price=max_price,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.put("/order/update", dependencies=[Depends(require_admin)])
def update_order(req: ServiceOrderUpdate, db: Session = Depends(get_db)):
    catalog_service.update_order(db, req.services)
    return {"message": "Orden actualizado exitosamente"}


@router.get("/{service_id}")
def get_service(service_id: str, db: Session = Depends(get_db)):
    return catalog_service.get_service(db, service_id)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_service(req: ServiceCreate, db: Session = Depends(get_db)):
    return catalog_service.create_service(db, req)


@router.put("/{service_id}", dependencies=[Depends(require_admin)])
def update_service(service_id: str, req: ServiceUpdate, db: Session = Depends(get_db)):
    return catalog_service.update_service(db, service_id, req)


@router.delete("/{service_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_service(service_id: str, db: Session = Depends(get_db)):
    catalog_service.delete_service(db, service_id)
    return Response(status_code=204)
