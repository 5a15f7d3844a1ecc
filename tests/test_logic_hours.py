import pytest
from datetime import date, datetime
from fastapi.testclient import TestClient
from salon_api.main import app
from salon_api.core.config_loader import load_salon_config
from salon_api.models.db_models import Appointment, AppointmentStatus
from salon_api.services.availability_service import compute_slots, regular_grid, public_hours_grid

client = TestClient(app)

MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)


@pytest.fixture
def config():
    return load_salon_config()


def _starts(slots):
    return [s["startTime"] for s in slots]


def test_sunday_is_closed(config):
    assert compute_slots(SUNDAY, 60, config) == []


def test_regular_day_grid(config):
    starts = _starts(compute_slots(MONDAY, 60, config))
    assert starts[0] == "08:00"
    assert starts[-1] == "17:00"
    # Nothing starts during the 13:00-14:00 break
    assert not [s for s in starts if "13:00" <= s < "14:00"]
    assert len(starts) == 33


def test_service_must_end_before_closing(config):
    assert regular_grid(MONDAY, 120, config)[-1] == datetime(2030, 1, 7, 16, 0)


def test_booked_appointment_blocks_overlaps(config):
    busy = [(datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0))]
    starts = _starts(compute_slots(MONDAY, 60, config, busy=busy))
    for blocked in ("09:15", "09:30", "09:45", "10:00", "10:15", "10:30", "10:45"):
        assert blocked not in starts
    assert "09:00" in starts and "11:00" in starts


def test_disabled_day_has_no_slots(config):
    assert compute_slots(MONDAY, 60, config, day_enabled=False) == []


def test_public_hours_need_contiguous_half_hours():
    hours = ["09:00", "09:30", "10:00", "15:00"]
    assert [d.strftime("%H:%M") for d in public_hours_grid(MONDAY, 60, hours)] == ["09:00", "09:30"]
    assert [d.strftime("%H:%M") for d in public_hours_grid(MONDAY, 90, hours)] == ["09:00"]
    assert [d.strftime("%H:%M") for d in public_hours_grid(MONDAY, 30, hours)] == ["09:00", "09:30", "10:00", "15:00"]


def test_public_hours_open_closed_days(config):
    # Published hours make a normally closed day bookable
    slots = compute_slots(SUNDAY, 30, config, public_hours=["10:00"])
    assert slots == [{"date": "2030-01-06", "startTime": "10:00", "endTime": "10:30", "available": True}]


def test_past_starts_are_skipped(config):
    now = datetime(2030, 1, 7, 12, 0)
    starts = _starts(compute_slots(MONDAY, 60, config, now=now))
    assert starts[0] == "12:15"


# Endpoints
def test_slots_endpoint_requires_date():
    response = client.get("/api/availability")
    assert response.status_code == 400
    assert response.json()["message"] == "La fecha es requerida"


def test_slots_endpoint_invalid_date():
    assert client.get("/api/availability?date=07-01-2030").status_code == 400


def test_slots_endpoint_excludes_booked(service, db):
    db.add(Appointment(
        client_name="Ana", client_phone="0991234567", date=datetime(2030, 1, 7, 8, 0),
        service_id=service.id, status=AppointmentStatus.CONFIRMED,
    ))
    db.commit()
    slots = client.get("/api/availability?date=2030-01-07&duration=60").json()
    starts = _starts(slots)
    # 90 minute appointment at 08:00 runs until 09:30
    assert starts[0] == "09:30"


def test_disable_and_enable_day(admin_headers):
    disabled = client.post("/api/availability/admin/disable", json={"date": "2030-01-07"}, headers=admin_headers)
    assert disabled.status_code == 200
    assert client.get("/api/availability?date=2030-01-07").json() == []

    client.post("/api/availability/admin/enable", json={"date": "2030-01-07"}, headers=admin_headers)
    assert len(client.get("/api/availability?date=2030-01-07").json()) > 0


def test_enable_range_and_dates(admin_headers):
    response = client.post(
        "/api/availability/admin/enable-range",
        json={"startDate": "2030-01-07", "endDate": "2030-01-09"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert len(response.json()["data"]) == 3

    dates = client.get("/api/availability/dates?month=1&year=2030").json()
    assert dates == ["2030-01-07", "2030-01-08", "2030-01-09"]
    assert client.get("/api/availability/dates?month=2&year=2030").json() == []


def test_enable_range_rejects_inverted_range(admin_headers):
    response = client.post(
        "/api/availability/admin/enable-range",
        json={"startDate": "2030-01-09", "endDate": "2030-01-07"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_remove_day(admin_headers):
    client.post("/api/availability/admin/enable", json={"date": "2030-01-07"}, headers=admin_headers)
    first = client.post("/api/availability/admin/remove", json={"date": "2030-01-07"}, headers=admin_headers)
    assert first.json()["removed"] is True
    second = client.post("/api/availability/admin/remove", json={"date": "2030-01-07"}, headers=admin_headers)
    assert second.json()["removed"] is False


def test_admin_endpoints_need_token():
    assert client.post("/api/availability/admin/enable", json={"date": "2030-01-07"}).status_code == 401
