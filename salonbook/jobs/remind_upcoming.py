"""
Lembretes automáticos: a cada execução pega os agendamentos ativos que começam
dentro da próxima janela (REMINDER_LEAD_MINUTES) e ainda não foram lembrados.

    python -m salonbook.jobs.remind_upcoming          # uma passada (cron)
    python -m salonbook.jobs.remind_upcoming --loop   # fica rodando
"""

from __future__ import annotations

import argparse
import time
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import configure_mappers, sessionmaker

import salonbook.db.base  # noqa: F401
from salonbook.core.logging import configure_logging, get_logger
from salonbook.core.settings import settings
from salonbook.db.session import SessionLocal
from salonbook.models.appointment import REMINDABLE_STATUSES, Appointment
from salonbook.services.notifications import deliver_reminder

configure_mappers()

log = get_logger(component="reminders")


def due_appointments(db, now: datetime, lead: timedelta) -> list[Appointment]:
    return (
        db.query(Appointment)
        .filter(
            Appointment.active.is_(True),
            Appointment.reminder_sent.is_(False),
            Appointment.status.in_(REMINDABLE_STATUSES),
            Appointment.starts_at > now,
            Appointment.starts_at <= now + lead,
        )
        .order_by(Appointment.starts_at.asc())
        .all()
    )


def run_once(session_factory: sessionmaker = SessionLocal, now: datetime | None = None) -> int:
    """Uma passada. Retorna quantos agendamentos foram marcados como lembrados."""
    now = now or datetime.now(UTC)
    lead = timedelta(minutes=settings.REMINDER_LEAD_MINUTES)
    marked = 0
    with session_factory() as db:
        for ap in due_appointments(db, now, lead):
            try:
                result = deliver_reminder(db, ap)
            except Exception:
                # segue para os próximos; este fica para a próxima passada
                log.exception("reminder.failed", appointment_id=ap.id)
                continue
            # só erro de envio tenta de novo; canal sem configuração não tem o que repetir
            if result.get("failed") and not result.get("sent"):
                log.warning(
                    "reminder.not_delivered", appointment_id=ap.id, failed=result["failed"]
                )
                continue
            ap.reminder_sent = True
            db.commit()
            marked += 1
            log.info(
                "reminder.marked",
                appointment_id=ap.id,
                code=ap.code,
                sent=result.get("sent", False),
            )
    log.info(
        "reminder.pass",
        marked=marked,
        window_start=now.isoformat(),
        window_end=(now + lead).isoformat(),
    )
    return marked


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Envia lembretes de agendamentos próximos")
    parser.add_argument("--loop", action="store_true", help="repete a cada intervalo")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.REMINDER_INTERVAL_SECONDS,
        help="segundos entre passadas (com --loop)",
    )
    args = parser.parse_args(argv)

    configure_logging(json=settings.LOG_JSON, level=settings.LOG_LEVEL)
    if not args.loop:
        run_once()
        return
    while True:
        try:
            run_once()
        except Exception:
            log.exception("reminder.pass_failed")
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
