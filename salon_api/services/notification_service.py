import html
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict
from urllib.parse import quote
import requests
from sqlalchemy import func
from sqlalchemy.orm import Session
from salon_api.core.config import settings
from salon_api.core.config_loader import load_salon_config
from salon_api.core.errors import ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Appointment, AppointmentStatus, Review

# SMTP Configuration
SMTP_SERVER = settings.SMTP_SERVER
SMTP_PORT = settings.SMTP_PORT
SMTP_USERNAME = settings.SMTP_USERNAME
SMTP_PASSWORD = settings.SMTP_PASSWORD

# WhatsApp Cloud API
WHATSAPP_CLOUD_API_TOKEN = settings.WHATSAPP_CLOUD_API_TOKEN
WHATSAPP_PHONE_NUMBER_ID = settings.WHATSAPP_PHONE_NUMBER_ID
WHATSAPP_API_URL = "https://graph.facebook.com/v19.0/{phone_id}/messages"

DAYS_ES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
MONTHS_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def get_notification_config() -> Dict[str, Any]:
    config = load_salon_config()
    return config.get("notifications", {})


def format_date_es(value) -> str:
    """2025-03-03 10:00 -> 'lunes 3 de marzo de 2025'"""
    return f"{DAYS_ES[value.weekday()]} {value.day} de {MONTHS_ES[value.month - 1]} de {value.year}"


def appointment_details(appointment: Appointment, escape: bool = False) -> Dict[str, str]:
    """Plain values for WhatsApp text, HTML-escaped values for e-mail bodies."""
    service = appointment.service
    details = {
        "client_name": appointment.client_name,
        "client_phone": appointment.client_phone or "",
        "service_name": service.name if service else "Servicio",
        "date": format_date_es(appointment.date),
        "time": appointment.date.strftime("%H:%M"),
    }
    if escape:
        details = {key: html.escape(value) for key, value in details.items()}
    return details


def render_layout(title: str, content: str) -> str:
    """Wraps an HTML fragment in the salon e-mail layout."""
    config = load_salon_config()
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
      <div style="background: #f8c8dc; padding: 20px; text-align: center;">
        <h1 style="margin: 0; color: #8b3a62;">{config.get('company_name', '')}</h1>
      </div>
      <div style="padding: 24px;">
        <h2 style="color: #8b3a62;">{title}</h2>
        {content}
      </div>
      <div style="background: #f5f5f5; padding: 16px; font-size: 12px; text-align: center;">
        <p>{config.get('company_name', '')} · {config.get('owner_name', '')}</p>
        <p>{config.get('address', '')} · {config.get('phone', '')}</p>
        <p>Instagram: {config.get('instagram', '')}</p>
      </div>
    </div>
    """


def _details_block(details: Dict[str, str]) -> str:
    return (
        "<ul>"
        f"<li><strong>Servicio:</strong> {details['service_name']}</li>"
        f"<li><strong>Fecha:</strong> {details['date']}</li>"
        f"<li><strong>Hora:</strong> {details['time']}</li>"
        "</ul>"
    )


def send_email(subject: str, body: str, to_email: str = None, html: bool = True) -> bool:
    """
    Sends an email using SMTP (e.g., Gmail).
    Defaults `to_email` to the owner_email from config if not provided.
    Returns: True if successful, False otherwise.
    """
    config = load_salon_config()
    notif_config = config.get("notifications", {})

    if not notif_config.get("email_enabled", False):
        logger.info("ℹ️ Email notifications are disabled in config.")
        return False

    if not to_email:
        to_email = config.get("owner_email")
        if not to_email:
            logger.error("❌ No recipient email found (owner_email missing in config).")
            return False

    if not SMTP_USERNAME or not SMTP_PASSWORD:
        logger.error("❌ SMTP credentials missing in .env.")
        return False

    try:
        msg = MIMEMultipart()
        msg['From'] = f"{config.get('company_name', '')} <{SMTP_USERNAME}>"
        msg['To'] = to_email
        msg['Subject'] = subject

        msg.attach(MIMEText(body, 'html' if html else 'plain', 'utf-8'))

        server = smtplib.SMTP(SMTP_SERVER, SMTP_PORT)
        server.starttls()
        server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.sendmail(SMTP_USERNAME, to_email, msg.as_string())
        server.quit()

        logger.info(f"✅ Email sent to {to_email} with subject: '{subject}'")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send email: {e}")
        return False


def send_appointment_confirmation(appointment: Appointment) -> bool:
    if not appointment.client_email:
        return False
    details = appointment_details(appointment, escape=True)
    content = (
        f"<p>Hola {details['client_name']},</p>"
        "<p>Tu cita ha sido <strong>confirmada</strong>. Te esperamos:</p>"
        f"{_details_block(details)}"
        "<p>Si necesitas reprogramar, contáctanos por WhatsApp.</p>"
    )
    return send_email("Cita confirmada", render_layout("¡Tu cita está confirmada!", content), appointment.client_email)


def send_appointment_reminder(appointment: Appointment) -> bool:
    if not appointment.client_email:
        return False
    details = appointment_details(appointment, escape=True)
    content = (
        f"<p>Hola {details['client_name']},</p>"
        "<p>Te recordamos tu próxima cita:</p>"
        f"{_details_block(details)}"
    )
    return send_email("Recordatorio de cita", render_layout("Recordatorio de tu cita", content), appointment.client_email)


def send_appointment_cancellation(appointment: Appointment) -> bool:
    if not appointment.client_email:
        return False
    details = appointment_details(appointment, escape=True)
    content = (
        f"<p>Hola {details['client_name']},</p>"
        "<p>Lamentamos informarte que tu cita ha sido <strong>cancelada</strong>:</p>"
        f"{_details_block(details)}"
        "<p>Puedes agendar una nueva cita cuando lo desees.</p>"
    )
    return send_email("Cita cancelada", render_layout("Cita cancelada", content), appointment.client_email)


def send_owner_new_booking(appointment: Appointment) -> bool:
    if not get_notification_config().get("notify_owner_on_booking", False):
        return False
    details = appointment_details(appointment, escape=True)
    content = (
        f"<p>Nueva solicitud de cita de <strong>{details['client_name']}</strong> "
        f"({details['client_phone']}).</p>"
        f"{_details_block(details)}"
    )
    return send_email(f"Nueva cita: {appointment.client_name}", render_layout("Nueva cita pendiente", content))


def build_whatsapp_message(kind: str, appointment: Appointment) -> str:
    details = appointment_details(appointment)
    company = load_salon_config().get("company_name", "")
    templates = {
        "confirmation": "Hola {client_name}, tu cita de {service_name} para el {date} a las {time} ha sido confirmada. ¡Te esperamos en {company}!",
        "reminder": "Hola {client_name}, te recordamos tu cita de {service_name} el {date} a las {time}. {company}",
        "cancellation": "Hola {client_name}, tu cita de {service_name} del {date} a las {time} ha sido cancelada. Escríbenos para reprogramar. {company}",
    }
    if kind not in templates:
        raise ValidationError("Tipo de mensaje inválido. Use confirmation, reminder o cancellation")
    return templates[kind].format(company=company, **details)


def normalize_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    # Local Ecuadorian numbers (09XXXXXXXX) get the country code
    if len(digits) == 10 and digits.startswith("0"):
        digits = "593" + digits[1:]
    return digits


def build_whatsapp_link(phone: str, message: str) -> str:
    digits = normalize_phone(phone)
    if not digits:
        raise ValidationError("Número de teléfono inválido")
    return f"https://wa.me/{digits}?text={quote(message)}"


def send_whatsapp_message(to_number: str, message: str) -> bool:
    """
    Sends a text message through the WhatsApp Cloud API.
    Returns: True if successful, False otherwise (including when the API is not configured).
    """
    config = get_notification_config()
    if not config.get("whatsapp_enabled", False):
        logger.info("ℹ️ WhatsApp notifications are disabled in config.")
        return False

    if not WHATSAPP_CLOUD_API_TOKEN or not WHATSAPP_PHONE_NUMBER_ID:
        logger.info("ℹ️ WhatsApp Cloud API is not configured; only links are generated.")
        return False

    url = WHATSAPP_API_URL.format(phone_id=WHATSAPP_PHONE_NUMBER_ID)
    headers = {
        "Authorization": f"Bearer {WHATSAPP_CLOUD_API_TOKEN}",
        "Content-Type": "application/json"
    }
    payload = {
        "messaging_product": "whatsapp",
        "to": normalize_phone(to_number),
        "type": "text",
        "text": {"body": message}
    }

    try:
        logger.info(f"📤 Sending WhatsApp message to {payload['to']}...")
        response = requests.post(url, json=payload, headers=headers, timeout=10)
        if response.status_code in (200, 201):
            logger.info(f"✅ WhatsApp message sent to {payload['to']}.")
            return True
        logger.error(f"❌ WhatsApp API Error {response.status_code}: {response.text}")
        return False
    except requests.RequestException as e:
        logger.error(f"❌ Exception sending WhatsApp message: {e}")
        return False


def notification_summary(db: Session) -> Dict[str, Any]:
    unread_reviews = db.query(func.count(Review.id)).filter(Review.is_read.is_(False)).scalar()
    pending_reviews = db.query(func.count(Review.id)).filter(Review.is_approved.is_(False)).scalar()
    pending_appointments = (
        db.query(func.count(Appointment.id)).filter(Appointment.status == AppointmentStatus.PENDING).scalar()
    )
    recent = (
        db.query(Review)
        .filter(Review.is_read.is_(False))
        .order_by(Review.created_at.desc())
        .limit(5)
        .all()
    )
    return {
        "counts": {
            "unreadReviews": unread_reviews,
            "pendingReviews": pending_reviews,
            "pendingAppointments": pending_appointments,
        },
        "recentItems": {
            "reviews": [
                {
                    "id": r.id,
                    "clientName": r.client_name,
                    "rating": r.rating,
                    "comment": r.comment,
                    "createdAt": r.created_at.isoformat() if r.created_at else None,
                }
                for r in recent
            ]
        },
    }


def mark_all_read(db: Session, kind: str) -> int:
    if kind != "reviews":
        raise ValidationError("Tipo de notificación inválido")
    updated = db.query(Review).filter(Review.is_read.is_(False)).update({Review.is_read: True}, synchronize_session=False)
    db.commit()
    logger.info(f"📬 Marked {updated} reviews as read")
    return updated
