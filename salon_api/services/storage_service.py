import asyncio
import os
import secrets
from typing import Dict, Optional
from salon_api.core.config import settings
from salon_api.core.logger import logger
from salon_api.models.db_models import ImageType
from salon_api.services import drive_service


def local_file_name(original_name: str, extension: str = ".webp") -> str:
    stem = os.path.splitext(os.path.basename(original_name or "imagen"))[0]
    return f"{secrets.token_hex(8)}_{drive_service.sanitize_name(stem) or 'imagen'}{extension}"


def save_local(content: bytes, original_name: str) -> Dict[str, Optional[str]]:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    name = local_file_name(original_name)
    with open(os.path.join(settings.UPLOAD_DIR, name), "wb") as f:
        f.write(content)
    url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/{name}"
    logger.info(f"💾 Stored locally: {name}")
    return {"id": None, "name": name, "url": url}


async def store(content: bytes, image_type: ImageType, original_name: str = "", service_name: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Uploads to Google Drive, falling back to the local uploads directory."""
    if drive_service.is_configured():
        try:
            return await drive_service.upload_file(content, image_type, service_name=service_name)
        except Exception as e:
            logger.warning(f"⚠️ Drive upload failed, using local storage: {e}")
    return await asyncio.to_thread(save_local, content, original_name)


def _local_path(url: str) -> Optional[str]:
    marker = "/uploads/"
    if marker not in url:
        return None
    return os.path.join(settings.UPLOAD_DIR, os.path.basename(url.split(marker, 1)[1]))


async def remove(url: Optional[str]) -> bool:
    """Deletes a stored file by its public URL. Failures are logged, never raised."""
    if not url:
        return False
    try:
        if drive_service.is_drive_url(url):
            file_id = drive_service.get_file_id_from_url(url)
            if file_id:
                await drive_service.delete_file(file_id)
                return True
            return False
        path = _local_path(url)
        if path and os.path.exists(path):
            os.remove(path)
            logger.info(f"🗑️ Removed local file {path}")
            return True
    except Exception as e:
        logger.warning(f"⚠️ Could not delete stored file {url}: {e}")
    return False
