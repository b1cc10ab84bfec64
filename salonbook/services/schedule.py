from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from salonbook.utils.slots import time_to_minutes
from salonbook.utils.week import normalize_weekday


class _ScheduleLike(Protocol):
    weekday: int | str
    starts: object
    ends: object


@dataclass(frozen=True)
class OpenWindow:
    start_minutes: int
    end_minutes: int

    def contains(self, start: int, end: int) -> bool:
        return start >= self.start_minutes and end <= self.end_minutes


def open_windows_for(entries: Iterable[_ScheduleLike] | None, weekday: int | str) -> list[OpenWindow]:
    """
    Janelas abertas ``[início, fim)`` do dia, na ordem cadastrada.
    Entradas com horário ilegível ou fim <= início são ignoradas; não há fusão
    de janelas sobrepostas.
    """
    target = normalize_weekday(weekday)
    windows: list[OpenWindow] = []
    for entry in entries or ():
        try:
            entry_day = normalize_weekday(entry.weekday)
        except ValueError:
            continue
        if entry_day != target:
            continue
        start = time_to_minutes(entry.starts)
        end = time_to_minutes(entry.ends)
        if start is None or end is None or end <= start:
            continue
        windows.append(OpenWindow(start, end))
    return windows
