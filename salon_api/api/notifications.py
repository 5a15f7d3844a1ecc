from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from salon_api.core.errors import ValidationError
from salon_api.core.security import get_current_user, require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import WhatsAppRequest
from salon_api.services import appointment_service, notification_service

router = APIRouter()


@router.post("/whatsapp", dependencies=[Depends(get_current_user)])
def whatsapp(req: WhatsAppRequest, db: Session = Depends(get_db)):
    phone, message = req.phone, req.message
    if req.appointment_id:
        appointment = appointment_service.load_appointment(db, req.appointment_id)
        phone = phone or appointment.client_phone
        message = message or notification_service.build_whatsapp_message(req.kind, appointment)
    if not phone or not message:
        raise ValidationError("Se requiere appointmentId o teléfono y mensaje")

    link = notification_service.build_whatsapp_link(phone, message)
    sent = notification_service.send_whatsapp_message(phone, message) if req.send else False
    return {"link": link, "message": message, "sent": sent}


@router.get("/dashboard", dependencies=[Depends(require_admin)])
def dashboard(db: Session = Depends(get_db)):
    return notification_service.notification_summary(db)


@router.put("/mark-all-read/{kind}", dependencies=[Depends(require_admin)])
def mark_all_read(kind: str, db: Session = Depends(get_db)):
    updated = notification_service.mark_all_read(db, kind)
    return {"message": "Notificaciones marcadas como leídas", "updated": updated}


@router.post("/reminder/{appointment_id}", dependencies=[Depends(require_admin)])
def email_reminder(appointment_id: str, db: Session = Depends(get_db)):
    appointment = appointment_service.load_appointment(db, appointment_id)
    if not appointment.client_email:
        raise ValidationError("La cita no tiene correo electrónico del cliente")
    sent = notification_service.send_appointment_reminder(appointment)
    return {"sent": sent}
