from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from salonbook.models.appointment import Appointment
from salonbook.models.client import Client

CODE_WIDTH = 6


def parse_code(code: str | None) -> int:
    """Valor numérico do código; ausente ou ilegível conta como 0."""
    if not code:
        return 0
    try:
        return int(code.strip())
    except ValueError:
        return 0


def next_booking_code(last_code: str | None) -> str:
    return str(parse_code(last_code) + 1).zfill(CODE_WIDTH)


def last_booking_code(db: Session) -> str | None:
    # o mais recente por criação, não o maior valor
    return (
        db.query(Appointment.code)
        .order_by(Appointment.created_at.desc(), Appointment.id.desc())
        .limit(1)
        .scalar()
    )


def allocate_booking_code(db: Session) -> str:
    """
    Lê o último código e soma 1. Não há trava: duas criações simultâneas podem
    ler o mesmo valor, e o índice único em ``appointments.code`` acusa o conflito.
    """
    return next_booking_code(last_booking_code(db))


def next_client_code(db: Session) -> int:
    current = db.query(func.max(Client.code)).scalar()
    return (current or 0) + 1
