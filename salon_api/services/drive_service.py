import asyncio
import io
import json
import os
import re
import time
import unicodedata
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from salon_api.core.config import settings
from salon_api.core.errors import ServiceUnavailableError
from salon_api.core.logger import logger
from salon_api.models.db_models import ImageType

SCOPES = ['https://www.googleapis.com/auth/drive']
CREDENTIALS_FILE = 'google_credentials.json'
TOKEN_URI = 'https://oauth2.googleapis.com/token'
MAX_RETRIES = 3
URL_CACHE_TTL = 24 * 60 * 60
FILE_ID_PATTERN = re.compile(r"[-\w]{25,}")
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
SERVICES_ROOT_FOLDER = "Kriss-Services"

_service = None
# file_id -> (url, cached_at)
_url_cache: Dict[str, tuple] = {}


def get_drive_service():
    """
    Authenticate and return the Google Drive v3 service.
    Supports loading credentials from:
    1. OAuth refresh token (GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REFRESH_TOKEN).
    2. 'google_credentials.json' service account file (local development).
    3. 'GOOGLE_CREDENTIALS_JSON' env variable (cloud deployment).
    Returns None if credentials are missing or invalid.
    """
    global _service
    if _service is not None:
        return _service

    try:
        if settings.GOOGLE_REFRESH_TOKEN and settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
            logger.info("🔑 Loading Drive credentials from OAuth refresh token")
            creds = Credentials(
                token=None,
                refresh_token=settings.GOOGLE_REFRESH_TOKEN,
                client_id=settings.GOOGLE_CLIENT_ID,
                client_secret=settings.GOOGLE_CLIENT_SECRET,
                token_uri=TOKEN_URI,
                scopes=SCOPES,
            )
        elif os.path.exists(CREDENTIALS_FILE):
            logger.info(f"🔑 Loading credentials from file: {CREDENTIALS_FILE}")
            creds = service_account.Credentials.from_service_account_file(CREDENTIALS_FILE, scopes=SCOPES)
        elif settings.GOOGLE_CREDENTIALS_JSON:
            logger.info("🔑 Loading credentials from Environment Variable")
            info = json.loads(settings.GOOGLE_CREDENTIALS_JSON)
            creds = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        else:
            logger.warning("⚠️ No Google credentials found (oauth, file or env). Drive storage disabled.")
            return None

        _service = build('drive', 'v3', credentials=creds, cache_discovery=False)
        return _service

    except Exception as e:
        logger.error(f"❌ Error initializing Google Drive service: {e}")
        return None


def reset_service():
    global _service
    _service = None
    _url_cache.clear()


def is_configured() -> bool:
    return get_drive_service() is not None


def _require_service():
    service = get_drive_service()
    if not service:
        raise ServiceUnavailableError("Google Drive no está configurado")
    return service


def with_retry(operation: Callable[[], Any], retries: int = MAX_RETRIES, sleep: Callable[[float], None] = time.sleep):
    """Runs a Drive call, retrying with exponential backoff (2, 4, 8 s)."""
    for attempt in range(1, retries + 1):
        try:
            return operation()
        except HttpError as error:
            if attempt == retries:
                logger.error(f"❌ Google API Error after {retries} attempts: {error}")
                raise
            wait = 2 ** attempt
            logger.warning(f"⚠️ Drive call failed (attempt {attempt}/{retries}), retrying in {wait}s: {error}")
            sleep(wait)


def folder_for(image_type: ImageType) -> Optional[str]:
    folders = {
        ImageType.GALLERY: settings.GOOGLE_DRIVE_GALLERY_FOLDER_ID,
        ImageType.SERVICE: settings.GOOGLE_DRIVE_SERVICES_FOLDER_ID,
        ImageType.BEFORE_AFTER: settings.GOOGLE_DRIVE_BEFORE_AFTER_FOLDER_ID,
    }
    return folders.get(image_type) or settings.GOOGLE_DRIVE_DEFAULT_FOLDER_ID or None


def sanitize_name(name: str) -> str:
    """'Uñas Acrílicas' -> 'unas-acrilicas'"""
    normalized = unicodedata.normalize("NFKD", name.lower())
    ascii_name = "".join(c for c in normalized if not unicodedata.combining(c))
    return re.sub(r"-+", "-", re.sub(r"[^a-z0-9-]", "-", ascii_name)).strip("-")


def build_file_name(image_type: ImageType, service_name: Optional[str] = None, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    if service_name:
        prefix = sanitize_name(service_name) or "servicio"
    elif image_type == ImageType.TEMP:
        prefix = "temp"
    elif image_type == ImageType.BEFORE_AFTER:
        prefix = "antes-despues"
    else:
        prefix = "galeria"
    return f"{prefix}-{now:%Y-%m-%d}-{int(now.timestamp() * 1000)}.webp"


def find_folder(service, name: str, parent_id: Optional[str] = None) -> Optional[str]:
    query = f"name = '{name}' and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
    if parent_id:
        query += f" and '{parent_id}' in parents"
    result = with_retry(lambda: service.files().list(q=query, fields="files(id, name)", spaces="drive").execute())
    files = result.get("files", [])
    return files[0]["id"] if files else None


def create_folder(service, name: str, parent_id: Optional[str] = None) -> str:
    body = {"name": name, "mimeType": FOLDER_MIME_TYPE}
    if parent_id:
        body["parents"] = [parent_id]
    created = with_retry(lambda: service.files().create(body=body, fields="id").execute())
    with_retry(lambda: service.permissions().create(
        fileId=created["id"], body={"role": "reader", "type": "anyone"}
    ).execute())
    logger.info(f"📁 Created Drive folder '{name}' ({created['id']})")
    return created["id"]


def service_folder(service, service_name: str, now: Optional[datetime] = None) -> str:
    """Finds or creates the `<service>-YYYY-MM-DD` folder under the services folder."""
    now = now or datetime.now()
    root = settings.GOOGLE_DRIVE_SERVICES_FOLDER_ID
    if not root:
        root = find_folder(service, SERVICES_ROOT_FOLDER) or create_folder(service, SERVICES_ROOT_FOLDER)
    name = f"{sanitize_name(service_name) or 'servicio'}-{now:%Y-%m-%d}"
    return find_folder(service, name, root) or create_folder(service, name, root)


def get_file_id_from_url(url: str) -> Optional[str]:
    if not url:
        return None
    match = FILE_ID_PATTERN.search(url)
    return match.group(0) if match else None


def is_drive_url(url: str) -> bool:
    return bool(url) and ("drive.google.com" in url or "googleusercontent.com" in url)


def _public_url_sync(file_id: str) -> str:
    cached = _url_cache.get(file_id)
    if cached and time.time() - cached[1] < URL_CACHE_TTL:
        return cached[0]

    service = _require_service()
    with_retry(lambda: service.permissions().create(
        fileId=file_id, body={"role": "reader", "type": "anyone"}
    ).execute())
    meta = with_retry(lambda: service.files().get(fileId=file_id, fields="webContentLink").execute())
    url = meta.get("webContentLink") or f"https://drive.google.com/uc?export=view&id={file_id}"
    _url_cache[file_id] = (url, time.time())
    return url


async def get_public_url(file_id: str) -> str:
    return await asyncio.to_thread(_public_url_sync, file_id)


async def upload_file(content: bytes, image_type: ImageType, mime_type: str = "image/webp", service_name: Optional[str] = None) -> Dict[str, str]:
    """Uploads bytes into the folder for `image_type` and returns {id, name, url}."""
    def _upload():
        service = _require_service()
        name = build_file_name(image_type, service_name)
        body = {"name": name}
        if image_type == ImageType.SERVICE and service_name:
            folder = service_folder(service, service_name)
        else:
            folder = folder_for(image_type)
        if folder:
            body["parents"] = [folder]
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
        created = with_retry(lambda: service.files().create(body=body, media_body=media, fields="id, name").execute())
        url = _public_url_sync(created["id"])
        logger.info(f"☁️ Uploaded to Drive: {name} ({created['id']})")
        return {"id": created["id"], "name": name, "url": url}

    return await asyncio.to_thread(_upload)


async def list_files(image_type: Optional[ImageType] = None, page_size: int = 10) -> List[Dict[str, Any]]:
    def _list():
        service = _require_service()
        query = "trashed = false"
        folder = folder_for(image_type) if image_type else None
        if folder:
            query += f" and '{folder}' in parents"
        result = with_retry(lambda: service.files().list(
            q=query,
            pageSize=page_size,
            fields="files(id, name, mimeType, size, createdTime, webContentLink, thumbnailLink)",
            orderBy="createdTime desc",
        ).execute())
        return result.get("files", [])

    return await asyncio.to_thread(_list)


async def delete_file(file_id: str) -> None:
    def _delete():
        service = _require_service()
        with_retry(lambda: service.files().delete(fileId=file_id).execute())
        _url_cache.pop(file_id, None)
        logger.info(f"🗑️ Deleted Drive file {file_id}")

    await asyncio.to_thread(_delete)
