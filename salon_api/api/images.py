from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.db_models import ImageType
from salon_api.models.schemas import ImageUpdate
from salon_api.services import image_service

router = APIRouter()


async def _read(upload: UploadFile):
    return await upload.read(), upload.filename or "imagen", upload.content_type


@router.get("")
def list_images(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    image_type: Optional[ImageType] = Query(None, alias="type"),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return image_service.list_images(db, is_active, image_type, category)


@router.get("/gallery")
def gallery(db: Session = Depends(get_db)):
    return image_service.gallery(db)


@router.get("/before-after")
def before_after(db: Session = Depends(get_db)):
    return image_service.before_after(db)


@router.get("/service/{service_id}")
def service_images(service_id: str, db: Session = Depends(get_db)):
    return image_service.by_service(db, service_id)


@router.get("/{image_id}")
def get_image(image_id: str, db: Session = Depends(get_db)):
    return image_service.get_image(db, image_id)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def upload_image(
    file: UploadFile = File(...),
    image_type: str = Form("GALLERY", alias="type"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    service_id: Optional[str] = Form(None, alias="serviceId"),
    is_active: bool = Form(True, alias="isActive"),
    is_highlight: bool = Form(False, alias="isHighlight"),
    display_service_name: Optional[str] = Form(None, alias="displayServiceName"),
    display_service_category: Optional[str] = Form(None, alias="displayServiceCategory"),
    is_after_image: bool = Form(False, alias="isAfterImage"),
    before_image_id: Optional[str] = Form(None, alias="beforeImageId"),
    db: Session = Depends(get_db),
):
    fields = {
        "type": image_type,
        "title": title,
        "description": description,
        "category": category,
        "tags": tags,
        "service_id": service_id,
        "is_active": is_active,
        "is_highlight": is_highlight,
        "display_service_name": display_service_name,
        "display_service_category": display_service_category,
        "is_after_image": is_after_image,
        "before_image_id": before_image_id,
    }
    return await image_service.create_image(db, await _read(file), fields)


@router.post("/before-after", status_code=201, dependencies=[Depends(require_admin)])
async def upload_before_after(
    files: List[UploadFile] = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    is_active: bool = Form(True, alias="isActive"),
    is_highlight: bool = Form(False, alias="isHighlight"),
    db: Session = Depends(get_db),
):
    uploads = [await _read(f) for f in files]
    fields = {
        "title": title,
        "description": description,
        "category": category,
        "tags": tags,
        "is_active": is_active,
        "is_highlight": is_highlight,
    }
    return await image_service.create_before_after(db, uploads, fields)


@router.put("/{image_id}", dependencies=[Depends(require_admin)])
def update_image(image_id: str, req: ImageUpdate, db: Session = Depends(get_db)):
    return image_service.update_image(db, image_id, req)


@router.delete("/{image_id}", status_code=204, dependencies=[Depends(require_admin)])
async def delete_image(image_id: str, db: Session = Depends(get_db)):
    await image_service.delete_image(db, image_id)
    return Response(status_code=204)
