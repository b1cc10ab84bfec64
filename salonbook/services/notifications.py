from __future__ import annotations

from datetime import datetime
from typing import Literal

from sqlalchemy.orm import Session, sessionmaker

from salonbook.core.errors import ForbiddenError, NotFoundError
from salonbook.core.logging import get_logger
from salonbook.email.render import render
from salonbook.models.appointment import Appointment
from salonbook.models.client import Client
from salonbook.models.user import User
from salonbook.services.mailer import send_email
from salonbook.services.sms import send_sms
from salonbook.utils.tz import to_utc

AppointmentAction = Literal["created", "updated", "deleted"]

log = get_logger(component="notifications")


def format_when(moment: datetime | None) -> str:
    if moment is None:
        return ""
    # ex.: "Monday, October 19, 2026 at 09:30 AM" (sempre UTC)
    return to_utc(moment).strftime("%A, %B %d, %Y at %I:%M %p")


def _client_context(client: Client) -> dict:
    return {
        "client_name": client.display_name,
        "phone": client.phone or "contacta al salón",
        "address": client.address or "dirección no disponible",
    }


def build_message(ap: Appointment, action: AppointmentAction, client: Client) -> str:
    ctx = {
        **_client_context(client),
        "action": action,
        "code": ap.code,
        "when": format_when(ap.starts_at),
    }
    return render("appointment_change.txt").render(ctx).strip()


def build_reminder(ap: Appointment, client: Client) -> str:
    ctx = {**_client_context(client), "when": format_when(ap.starts_at)}
    return render("appointment_reminder.txt").render(ctx).strip()


def _deliver(
    client: Client,
    user: User | None,
    phone: str | None,
    subject: str,
    message: str,
    appointment_id: int,
) -> tuple[list[str], list[str]]:
    """
    Envia pelos canais do tenant; falha em um canal não impede o outro.
    Retorna (entregues, com erro). Canal sem configuração ou sem destinatário
    não entra em nenhuma das duas listas.
    """
    channels = client.communication_channels or []
    delivered: list[str] = []
    failed: list[str] = []
    if "sms" in channels and phone:
        try:
            if send_sms(phone, message) is not None:
                delivered.append("sms")
        except Exception:
            log.exception("notification.sms_failed", appointment_id=appointment_id)
            failed.append("sms")
    if "email" in channels and user is not None and user.email:
        try:
            if send_email(subject, [user.email], message):
                delivered.append("email")
        except Exception:
            log.exception("notification.email_failed", appointment_id=appointment_id)
            failed.append("email")
    return delivered, failed


def notify_appointment_change(
    session_factory: sessionmaker, appointment_id: int, action: AppointmentAction
) -> None:
    """
    Roda depois da resposta (BackgroundTasks). Best-effort: qualquer erro é
    logado e engolido; o agendamento já foi gravado.
    """
    try:
        with session_factory() as db:
            ap = db.get(Appointment, appointment_id)
            if ap is None:
                return
            client = db.get(Client, ap.client_id)
            if client is None or not client.communication_channels:
                return
            user = db.get(User, ap.user_id) if ap.user_id else None
            message = build_message(ap, action, client)
            delivered, _ = _deliver(
                client,
                user,
                user.phone if user else None,
                "Actualización de cita",
                message,
                ap.id,
            )
            log.info(
                "notification.appointment_change",
                appointment_id=ap.id,
                action=action,
                channels=delivered,
            )
    except Exception:
        log.exception(
            "notification.failed", appointment_id=appointment_id, action=action
        )


def _recipients(db: Session, ap: Appointment) -> tuple[Client | None, User | None, str]:
    client = db.get(Client, ap.client_id)
    user = db.get(User, ap.user_id) if ap.user_id else None
    phone = (user.phone if user else "") or (client.phone if client else "")
    return client, user, phone


def _active_appointment(db: Session, appointment_id: int, client_id: int | None) -> Appointment:
    ap = (
        db.query(Appointment)
        .filter(Appointment.id == appointment_id, Appointment.active.is_(True))
        .one_or_none()
    )
    if ap is None:
        raise NotFoundError("Agendamento não encontrado")
    if client_id is not None and ap.client_id != client_id:
        raise ForbiddenError("Sem acesso a este agendamento")
    return ap


def deliver_reminder(db: Session, ap: Appointment) -> dict:
    """Lembrete de um agendamento já carregado (usado pela rota e pelo job)."""
    client, user, phone = _recipients(db, ap)
    if client is None or not client.communication_channels:
        return {"sent": False}
    message = build_reminder(ap, client)
    delivered, failed = _deliver(client, user, phone, "Recordatorio de cita", message, ap.id)
    log.info("reminder.sent", appointment_id=ap.id, channels=delivered, failed=failed)
    return {
        "sent": bool(delivered),
        "channels": delivered,
        "failed": failed,
        "message": message,
    }


def send_reminder(db: Session, appointment_id: int, client_id: int | None) -> dict:
    return deliver_reminder(db, _active_appointment(db, appointment_id, client_id))


def resend_confirmation(db: Session, appointment_id: int, client_id: int | None) -> dict:
    ap = _active_appointment(db, appointment_id, client_id)
    client, user, phone = _recipients(db, ap)
    if client is None or not client.communication_channels:
        return {"sent": False}
    message = build_message(ap, "created", client)
    delivered, _ = _deliver(client, user, phone, "Actualización de cita", message, ap.id)
    log.info("notification.confirmation_resent", appointment_id=ap.id, channels=delivered)
    return {"sent": bool(delivered), "channels": delivered, "message": message}
