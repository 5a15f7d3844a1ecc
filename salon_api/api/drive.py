import asyncio
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from salon_api.core.errors import ValidationError
from salon_api.core.security import get_current_user, require_admin
from salon_api.models.db_models import ImageType
from salon_api.services import drive_service, image_optimizer
from salon_api.services.image_service import validate_upload

router = APIRouter()

MAX_TEMP_FILES = 2


async def _upload(file: UploadFile, image_type: ImageType, service_name: Optional[str] = None):
    content = await file.read()
    validate_upload(content, file.content_type)
    optimized, _ = await asyncio.to_thread(image_optimizer.optimize, content, image_type)
    return await drive_service.upload_file(optimized, image_type, service_name=service_name)


@router.post("/upload", status_code=201, dependencies=[Depends(require_admin)])
async def upload(file: UploadFile = File(...), image_type: ImageType = Form(ImageType.GALLERY, alias="type")):
    return await _upload(file, image_type)


@router.post("/upload/temp", status_code=201, dependencies=[Depends(get_current_user)])
async def upload_temp(files: List[UploadFile] = File(...)):
    if len(files) > MAX_TEMP_FILES:
        raise ValidationError(f"Máximo {MAX_TEMP_FILES} archivos por solicitud")
    return [await _upload(f, ImageType.TEMP) for f in files]


@router.post("/upload/service", status_code=201, dependencies=[Depends(require_admin)])
async def upload_service(files: List[UploadFile] = File(...), service_name: str = Form(..., alias="serviceName")):
    return [await _upload(f, ImageType.SERVICE, service_name) for f in files]


@router.get("/files", dependencies=[Depends(require_admin)])
async def list_files(
    image_type: Optional[ImageType] = Query(None, alias="type"),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
):
    return await drive_service.list_files(image_type, page_size)


@router.delete("/files/{file_id}", dependencies=[Depends(require_admin)])
async def delete_file(file_id: str):
    await drive_service.delete_file(file_id)
    return {"message": "Archivo eliminado exitosamente"}


@router.get("/files/{file_id}/share", dependencies=[Depends(require_admin)])
async def share_file(file_id: str):
    return {"fileId": file_id, "url": await drive_service.get_public_url(file_id)}
