"""Grade fixa de slots de 15 minutos e conversões HH:MM <-> minutos <-> índice."""

from __future__ import annotations

import datetime as dt
import re

SLOT_MINUTES = 15
MINUTES_PER_DAY = 24 * 60
SLOTS_PER_DAY = MINUTES_PER_DAY // SLOT_MINUTES

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{1,2})\s*$")


def time_to_minutes(value: str | dt.time | None) -> int | None:
    """
    Minutos desde 00:00 para "HH:MM" (ou ``datetime.time``).
    Retorna None para entrada malformada ou fora de 00:00-23:59; quem chama
    deve descartar o valor em vez de propagar erro.
    """
    if value is None:
        return None
    if isinstance(value, dt.time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None
    m = _HHMM.match(value)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour >= 24 or minute >= 60:
        return None
    return hour * 60 + minute


def is_aligned(minutes: int) -> bool:
    return minutes % SLOT_MINUTES == 0


def minutes_to_slot_index(minutes: int) -> int:
    return minutes // SLOT_MINUTES


def slot_index_to_minutes(index: int) -> int:
    return index * SLOT_MINUTES


def minutes_to_time_str(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_since_midnight(moment: dt.datetime) -> int:
    return moment.hour * 60 + moment.minute


def day_candidates() -> list[int]:
    """Todos os inícios possíveis do dia (00:00, 00:15, ..., 23:45), em minutos."""
    return [i * SLOT_MINUTES for i in range(SLOTS_PER_DAY)]


def parse_aligned_time(value: str) -> dt.time:
    """HH:MM alinhado à grade -> ``datetime.time``; ValueError caso contrário."""
    minutes = time_to_minutes(value)
    if minutes is None:
        raise ValueError(f"Horário inválido: {value!r} (use HH:MM)")
    if not is_aligned(minutes):
        raise ValueError(
            f"Horário {value!r} fora da grade de {SLOT_MINUTES} minutos"
        )
    return dt.time(minutes // 60, minutes % 60)
