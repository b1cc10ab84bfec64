from __future__ import annotations

import datetime as dt

from pydantic import BaseModel


class AvailabilityOut(BaseModel):
    professional_id: int
    date: dt.date
    slot_minutes: int
    slot_count: int
    slots: list[str]  # ex.: ["09:00", "09:15", ...]
