import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from salon_api.main import app
from salon_api.models.db_models import Appointment, Review
from salon_api.services.notification_service import (
    send_email, send_whatsapp_message, build_whatsapp_link, format_date_es, send_owner_new_booking,
)

client = TestClient(app)


# Test WhatsApp (Mocked)
@patch("salon_api.services.notification_service.get_notification_config", return_value={"whatsapp_enabled": True})
@patch("salon_api.services.notification_service.requests.post")
@patch("salon_api.services.notification_service.WHATSAPP_CLOUD_API_TOKEN", "fake_token")
@patch("salon_api.services.notification_service.WHATSAPP_PHONE_NUMBER_ID", "12345")
def test_send_whatsapp_mocked(mock_post, mock_config):
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_post.return_value = mock_response

    result = send_whatsapp_message("099 123 4567", "Hola")

    assert result is True
    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert "12345/messages" in args[0]
    assert kwargs['json']['to'] == "593991234567"
    assert kwargs['json']['text']['body'] == "Hola"
    assert kwargs['headers']['Authorization'] == "Bearer fake_token"


@patch("salon_api.services.notification_service.get_notification_config", return_value={"whatsapp_enabled": True})
@patch("salon_api.services.notification_service.requests.post")
def test_whatsapp_not_configured(mock_post, mock_config):
    with patch("salon_api.services.notification_service.WHATSAPP_CLOUD_API_TOKEN", ""):
        assert send_whatsapp_message("0991234567", "Hola") is False
    mock_post.assert_not_called()


@patch("salon_api.services.notification_service.requests.post")
@patch("salon_api.services.notification_service.WHATSAPP_CLOUD_API_TOKEN", "fake_token")
@patch("salon_api.services.notification_service.WHATSAPP_PHONE_NUMBER_ID", "12345")
def test_whatsapp_disabled_in_config(mock_post):
    with patch("salon_api.services.notification_service.get_notification_config",
               return_value={"whatsapp_enabled": False}):
        assert send_whatsapp_message("0991234567", "Hola") is False
    mock_post.assert_not_called()


# Test Email (Mocked)
@patch("salon_api.services.notification_service.smtplib.SMTP")
def test_send_email_mocked(mock_smtp_cls):
    mock_server = MagicMock()
    mock_smtp_cls.return_value = mock_server

    with patch("salon_api.services.notification_service.load_salon_config") as mock_config:
        mock_config.return_value = {
            "company_name": "Kriss Beauty Nails",
            "notifications": {"email_enabled": True},
            "owner_email": "owner@test.com"
        }
        with patch("salon_api.services.notification_service.SMTP_USERNAME", "user"), \
             patch("salon_api.services.notification_service.SMTP_PASSWORD", "pass"):

            result = send_email("Test Subject", "<p>Test Body</p>", "client@test.com")

            assert result is True
            mock_smtp_cls.assert_called_once()
            mock_server.starttls.assert_called_once()
            mock_server.login.assert_called_with("user", "pass")
            mock_server.sendmail.assert_called_once()
            assert mock_server.sendmail.call_args.args[1] == "client@test.com"


def test_send_email_disabled():
    with patch("salon_api.services.notification_service.load_salon_config",
               return_value={"notifications": {"email_enabled": False}}):
        assert send_email("Subject", "Body", "client@test.com") is False


def test_whatsapp_link():
    link = build_whatsapp_link("+593 99 382 6728", "Hola María")
    assert link == "https://wa.me/593993826728?text=Hola%20Mar%C3%ADa"


def test_format_date_es():
    assert format_date_es(datetime(2030, 1, 7, 10, 0)) == "lunes 7 de enero de 2030"


def test_whatsapp_endpoint_from_appointment(service, db, user_headers):
    appointment = Appointment(
        client_name="María", client_phone="0991234567", date=datetime(2030, 1, 7, 10, 0), service_id=service.id
    )
    db.add(appointment)
    db.commit()

    response = client.post(
        "/api/notifications/whatsapp",
        json={"appointmentId": appointment.id, "kind": "reminder"},
        headers=user_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["link"].startswith("https://wa.me/593991234567?text=")
    assert "lunes 7 de enero de 2030" in body["message"]
    assert body["sent"] is False


def test_whatsapp_endpoint_requires_auth():
    response = client.post("/api/notifications/whatsapp", json={"phone": "0991234567", "message": "Hola"})
    assert response.status_code == 401


def test_whatsapp_endpoint_rejects_unknown_kind(service, db, user_headers):
    appointment = Appointment(
        client_name="María", client_phone="0991234567", date=datetime(2030, 1, 7, 10, 0), service_id=service.id
    )
    db.add(appointment)
    db.commit()
    response = client.post(
        "/api/notifications/whatsapp", json={"appointmentId": appointment.id, "kind": "spam"}, headers=user_headers
    )
    assert response.status_code == 400


def test_notification_dashboard(db, admin_headers):
    for i in range(7):
        db.add(Review(client_name=f"Cliente {i}", rating=5, comment="Muy bien"))
    db.add(Review(client_name="Leída", rating=4, comment="Bien", is_read=True, is_approved=True))
    db.commit()

    response = client.get("/api/notifications/dashboard", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["counts"] == {"unreadReviews": 7, "pendingReviews": 7, "pendingAppointments": 0}
    assert len(body["recentItems"]["reviews"]) == 5


def test_mark_all_read(db, admin_headers):
    db.add(Review(client_name="Ana", rating=5, comment="Muy bien"))
    db.commit()
    response = client.put("/api/notifications/mark-all-read/reviews", headers=admin_headers)
    assert response.json()["updated"] == 1
    assert client.put("/api/notifications/mark-all-read/appointments", headers=admin_headers).status_code == 400


@pytest.mark.parametrize("path", ["/api/notifications/dashboard"])
def test_notification_dashboard_admin_only(path, user_headers):
    assert client.get(path, headers=user_headers).status_code == 403


def test_owner_alert_escapes_client_input(service, db):
    appointment = Appointment(
        client_name="<a href='http://evil'>x</a>", client_phone="<b>099</b>",
        date=datetime(2030, 1, 7, 10, 0), service_id=service.id,
    )
    db.add(appointment)
    db.commit()

    with patch("salon_api.services.notification_service.get_notification_config",
               return_value={"notify_owner_on_booking": True}), \
         patch("salon_api.services.notification_service.send_email", return_value=True) as mock_send:
        assert send_owner_new_booking(appointment) is True

    body = mock_send.call_args.args[1]
    assert "<a href=" not in body
    assert "&lt;a href=&#x27;http://evil&#x27;&gt;x&lt;/a&gt;" in body
    assert "&lt;b&gt;099&lt;/b&gt;" in body


def test_email_reminder_endpoint(service, db, admin_headers):
    appointment = Appointment(
        client_name="María", client_phone="0991234567", client_email="maria@test.com",
        date=datetime(2030, 1, 7, 10, 0), service_id=service.id,
    )
    db.add(appointment)
    db.commit()

    with patch("salon_api.services.notification_service.send_email", return_value=True) as mock_send:
        response = client.post(f"/api/notifications/reminder/{appointment.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"sent": True}
    subject, body, to_email = mock_send.call_args.args
    assert subject == "Recordatorio de cita"
    assert to_email == "maria@test.com"
    assert "lunes 7 de enero de 2030" in body


def test_email_reminder_needs_client_email(service, db, admin_headers):
    appointment = Appointment(
        client_name="María", client_phone="0991234567", date=datetime(2030, 1, 7, 10, 0), service_id=service.id
    )
    db.add(appointment)
    db.commit()
    response = client.post(f"/api/notifications/reminder/{appointment.id}", headers=admin_headers)
    assert response.status_code == 400
