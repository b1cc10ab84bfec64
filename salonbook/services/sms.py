"""Envio de SMS pela API REST do Twilio."""

from __future__ import annotations

import httpx

from salonbook.core.logging import get_logger
from salonbook.core.settings import settings

log = get_logger(component="sms")


def sms_configured() -> bool:
    return bool(
        settings.TWILIO_ACCOUNT_SID
        and settings.TWILIO_AUTH_TOKEN
        and settings.TWILIO_FROM_PHONE
    )


def send_sms(to_phone: str, body: str) -> str | None:
    """
    Envia um SMS e devolve o SID da mensagem.
    Sem credenciais configuradas o envio é ignorado (retorna None).
    Erros HTTP sobem como ``httpx.HTTPError``.
    """
    if not sms_configured():
        log.warning("sms.skipped", reason="twilio_not_configured")
        return None

    account_sid = settings.TWILIO_ACCOUNT_SID
    with httpx.Client(timeout=10.0) as client:
        response = client.post(
            f"{settings.TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json",
            auth=(account_sid, settings.TWILIO_AUTH_TOKEN),
            data={"To": to_phone, "From": settings.TWILIO_FROM_PHONE, "Body": body},
        )
    response.raise_for_status()
    sid = response.json().get("sid")
    log.info("sms.sent", to=to_phone, sid=sid)
    return sid
