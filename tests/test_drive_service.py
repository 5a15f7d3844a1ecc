import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError
from salon_api.main import app
from salon_api.models.db_models import ImageType
from salon_api.services import drive_service

client = TestClient(app)


@pytest.fixture(autouse=True)
def fresh_drive():
    drive_service.reset_service()
    yield
    drive_service.reset_service()


@pytest.fixture
def mock_drive():
    service = MagicMock()
    files = service.files.return_value
    files.create.return_value.execute.return_value = {"id": "1AbCdEfGhIjKlMnOpQrStUvWxYz", "name": "x.webp"}
    files.get.return_value.execute.return_value = {"webContentLink": "https://drive.google.com/uc?id=1AbCdEfGhIjKlMnOpQrStUvWxYz"}
    files.list.return_value.execute.return_value = {"files": [{"id": "f1", "name": "galeria.webp"}]}
    with patch("salon_api.services.drive_service.get_drive_service", return_value=service):
        yield service


def test_sanitize_name():
    assert drive_service.sanitize_name("Uñas Acrílicas & Gel") == "unas-acrilicas-gel"


def test_build_file_name():
    now = datetime(2030, 1, 7, 10, 0)
    ts = int(now.timestamp() * 1000)
    assert drive_service.build_file_name(ImageType.GALLERY, now=now) == f"galeria-2030-01-07-{ts}.webp"
    assert drive_service.build_file_name(ImageType.TEMP, now=now).startswith("temp-2030-01-07-")
    assert drive_service.build_file_name(ImageType.SERVICE, "Pedicure Spa", now=now).startswith("pedicure-spa-")


def test_get_file_id_from_url():
    url = "https://drive.google.com/uc?export=view&id=1AbCdEfGhIjKlMnOpQrStUvWxYz"
    assert drive_service.get_file_id_from_url(url) == "1AbCdEfGhIjKlMnOpQrStUvWxYz"
    assert drive_service.get_file_id_from_url("http://localhost/uploads/a.webp") is None


def test_with_retry_backs_off():
    error = HttpError(MagicMock(status=500, reason="boom"), b"error")
    operation = MagicMock(side_effect=[error, error, "ok"])
    sleeps = []
    assert drive_service.with_retry(operation, sleep=sleeps.append) == "ok"
    assert sleeps == [2, 4]


def test_with_retry_gives_up():
    error = HttpError(MagicMock(status=500, reason="boom"), b"error")
    operation = MagicMock(side_effect=error)
    with pytest.raises(HttpError):
        drive_service.with_retry(operation, sleep=lambda _: None)
    assert operation.call_count == 3


@pytest.mark.asyncio
async def test_upload_file_shares_and_caches(mock_drive):
    with patch.object(drive_service.settings, "GOOGLE_DRIVE_GALLERY_FOLDER_ID", "folder-g"):
        result = await drive_service.upload_file(b"data", ImageType.GALLERY)

    assert result["id"] == "1AbCdEfGhIjKlMnOpQrStUvWxYz"
    assert result["url"].startswith("https://drive.google.com/")
    body = mock_drive.files.return_value.create.call_args.kwargs["body"]
    assert body["parents"] == ["folder-g"]
    mock_drive.permissions.return_value.create.assert_called_once()

    # Second lookup is served from cache
    await drive_service.get_public_url(result["id"])
    mock_drive.permissions.return_value.create.assert_called_once()


@pytest.mark.asyncio
async def test_delete_clears_cache(mock_drive):
    url = await drive_service.get_public_url("1AbCdEfGhIjKlMnOpQrStUvWxYz")
    assert url
    await drive_service.delete_file("1AbCdEfGhIjKlMnOpQrStUvWxYz")
    mock_drive.files.return_value.delete.assert_called_with(fileId="1AbCdEfGhIjKlMnOpQrStUvWxYz")
    assert "1AbCdEfGhIjKlMnOpQrStUvWxYz" not in drive_service._url_cache


@pytest.mark.asyncio
async def test_list_files(mock_drive):
    files = await drive_service.list_files(ImageType.GALLERY, page_size=5)
    assert files == [{"id": "f1", "name": "galeria.webp"}]
    assert mock_drive.files.return_value.list.call_args.kwargs["pageSize"] == 5


def test_drive_routes_unconfigured(admin_headers):
    with patch("salon_api.services.drive_service.get_drive_service", return_value=None):
        response = client.get("/api/drive/files", headers=admin_headers)
    assert response.status_code == 503


def test_drive_routes_list(admin_headers, mock_drive):
    response = client.get("/api/drive/files?type=GALLERY", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()[0]["id"] == "f1"


def test_drive_temp_upload_limit(user_headers):
    files = [("files", (f"{i}.png", b"x", "image/png")) for i in range(3)]
    response = client.post("/api/drive/upload/temp", files=files, headers=user_headers)
    assert response.status_code == 400


def test_service_folder_reuses_existing(mock_drive):
    files = mock_drive.files.return_value
    files.list.return_value.execute.return_value = {"files": [{"id": "svc-folder", "name": "pedicure-spa-2030-01-07"}]}
    with patch.object(drive_service.settings, "GOOGLE_DRIVE_SERVICES_FOLDER_ID", "svc-root"):
        folder = drive_service.service_folder(mock_drive, "Pedicure Spa", now=datetime(2030, 1, 7, 10, 0))

    assert folder == "svc-folder"
    query = files.list.call_args.kwargs["q"]
    assert "name = 'pedicure-spa-2030-01-07'" in query
    assert "'svc-root' in parents" in query
    files.create.assert_not_called()


def test_service_folder_created_under_root_folder(mock_drive):
    files = mock_drive.files.return_value
    files.list.return_value.execute.return_value = {"files": []}
    files.create.return_value.execute.return_value = {"id": "new-folder"}
    with patch.object(drive_service.settings, "GOOGLE_DRIVE_SERVICES_FOLDER_ID", ""):
        folder = drive_service.service_folder(mock_drive, "Uñas Acrílicas", now=datetime(2030, 1, 7, 10, 0))

    assert folder == "new-folder"
    root_body, service_body = [c.kwargs["body"] for c in files.create.call_args_list]
    assert root_body == {"name": drive_service.SERVICES_ROOT_FOLDER, "mimeType": drive_service.FOLDER_MIME_TYPE}
    assert service_body == {
        "name": "unas-acrilicas-2030-01-07",
        "mimeType": drive_service.FOLDER_MIME_TYPE,
        "parents": ["new-folder"],
    }
    assert mock_drive.permissions.return_value.create.call_count == 2


@pytest.mark.asyncio
async def test_service_upload_goes_into_service_folder(mock_drive):
    with patch.object(drive_service, "service_folder", return_value="svc-folder") as mock_folder:
        await drive_service.upload_file(b"data", ImageType.SERVICE, service_name="Pedicure Spa")

    mock_folder.assert_called_once_with(mock_drive, "Pedicure Spa")
    body = mock_drive.files.return_value.create.call_args.kwargs["body"]
    assert body["parents"] == ["svc-folder"]
    assert body["name"].startswith("pedicure-spa-")
