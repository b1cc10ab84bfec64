from __future__ import annotations

import smtplib
from collections.abc import Sequence
from email.message import EmailMessage

from salonbook.core.logging import get_logger
from salonbook.core.settings import settings

log = get_logger(component="mailer")


def _build_message(
    subject: str, to: Sequence[str], text: str, html: str | None = None
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.MAIL_FROM_NAME} <{settings.MAIL_FROM}>"
    msg["To"] = ", ".join(to)
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")
    return msg


def send_email(
    subject: str, to: Sequence[str], text: str, html: str | None = None
) -> bool:
    """Envia via SMTP. False quando o SMTP não está configurado."""
    if not settings.MAIL_HOST:
        log.warning("email.skipped", reason="smtp_not_configured")
        return False
    msg = _build_message(subject, to, text, html)
    with smtplib.SMTP(settings.MAIL_HOST, settings.MAIL_PORT, timeout=10) as s:
        if settings.MAIL_TLS:
            s.starttls()
        if settings.MAIL_USER:
            s.login(settings.MAIL_USER, settings.MAIL_PASS)
        s.send_message(msg)
    log.info("email.sent", to=list(to), subject=subject)
    return True
