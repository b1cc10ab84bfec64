"""Resolução de horários livres de um profissional em um dia."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Protocol

from sqlalchemy import and_
from sqlalchemy.orm import Session

from salonbook.core.errors import ValidationFailure
from salonbook.models.appointment import Appointment
from salonbook.models.professional import Professional
from salonbook.services.schedule import open_windows_for
from salonbook.utils.slots import (
    SLOT_MINUTES,
    day_candidates,
    minutes_since_midnight,
    minutes_to_time_str,
)
from salonbook.utils.tz import day_bounds_utc, to_utc
from salonbook.utils.week import weekday_of


class _BookingLike(Protocol):
    id: int
    starts_at: datetime
    ends_at: datetime


def normalize_slot_count(slot_count: int | None) -> int:
    # duração inválida vira 1 slot, como o app sempre fez
    return max(int(slot_count or 1), 1)


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # intervalo [start, end), fim exclusivo
    return a_start < b_end and a_end > b_start


def _busy_intervals(
    bookings: Iterable[_BookingLike], day: date, editing: _BookingLike | None
) -> list[tuple[int, int]]:
    day_start, _ = day_bounds_utc(day)
    busy: list[tuple[int, int]] = []
    for b in bookings:
        if editing is not None and b.id == editing.id:
            continue
        start = int((to_utc(b.starts_at) - day_start) / timedelta(minutes=1))
        end = int((to_utc(b.ends_at) - day_start) / timedelta(minutes=1))
        busy.append((start, end))
    return busy


def compute_available_slots(
    professional: Professional | None,
    day: date,
    slot_count: int | None,
    bookings: Iterable[_BookingLike],
    now: datetime,
    editing: _BookingLike | None = None,
) -> list[str]:
    """
    Inícios ("HH:MM") em que ``slot_count`` slots cabem na agenda do dia.

    ``bookings`` são os agendamentos ativos do profissional naquele dia.
    Com ``editing`` (o agendamento sendo alterado) o filtro de passado é
    desligado e o próprio agendamento não conta como ocupado; o horário
    original só volta se a nova duração ainda couber ali.
    """
    if professional is None:
        return []

    windows = open_windows_for(professional.schedule, weekday_of(day))
    if not windows:
        return []

    now_utc = to_utc(now)
    now_minutes: int | None = None
    if editing is None:
        if day < now_utc.date():
            return []
        if day == now_utc.date():
            now_minutes = minutes_since_midnight(now_utc)

    duration = normalize_slot_count(slot_count) * SLOT_MINUTES
    busy = _busy_intervals(bookings, day, editing)

    result: list[int] = []
    for start in day_candidates():
        if now_minutes is not None and start <= now_minutes:
            continue
        end = start + duration
        if not any(w.contains(start, end) for w in windows):
            continue
        if any(_overlaps(start, end, b0, b1) for (b0, b1) in busy):
            continue
        result.append(start)

    return [minutes_to_time_str(m) for m in result]


def bookings_for_day(
    db: Session, professional_id: int, day: date
) -> list[Appointment]:
    """Agendamentos ativos do profissional que tocam o dia (UTC)."""
    start_utc, end_utc = day_bounds_utc(day)
    return (
        db.query(Appointment)
        .filter(
            and_(
                Appointment.professional_id == professional_id,
                Appointment.active.is_(True),
                Appointment.starts_at < end_utc,
                Appointment.ends_at > start_utc,
            )
        )
        .order_by(Appointment.starts_at.asc())
        .all()
    )


def available_slots_for(
    db: Session,
    professional: Professional | None,
    day: date,
    slot_count: int | None,
    now: datetime,
    editing: Appointment | None = None,
) -> list[str]:
    if professional is None:
        return []
    bookings = bookings_for_day(db, professional.id, day)
    return compute_available_slots(professional, day, slot_count, bookings, now, editing)


def requested_slot_count(
    professional: Professional, service_id: int | None, slots: int | None
) -> int:
    """Duração pedida na consulta: a do serviço no profissional, senão ``slots``."""
    if service_id is None:
        return normalize_slot_count(slots)
    assignment = professional.assignment_for(service_id)
    if assignment is None:
        raise ValidationFailure("Serviço não atendido por este profissional")
    return normalize_slot_count(assignment.slot_count)
