from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, constr

TimeStr = constr(pattern=r"^\d{2}:\d{2}$")  # "HH:MM"


class ServiceAssignmentIn(BaseModel):
    service_id: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    slot: int = Field(..., ge=1, description="duração em slots de 15 min")


class ScheduleEntryIn(BaseModel):
    day: str | int = Field(..., description="monday..sunday, lunes..domingo ou ISO 1..7")
    start: TimeStr  # type: ignore
    end: TimeStr  # type: ignore


class ProfessionalUpsertIn(BaseModel):
    user_id: int | None = Field(None, ge=1)
    name: constr(min_length=1, max_length=120) | None = None
    email: EmailStr | None = None
    phone: str | None = None
    # substituem por completo o que já existia
    services: list[ServiceAssignmentIn] = []
    schedule: list[ScheduleEntryIn] = []


class ServiceAssignmentOut(BaseModel):
    service_id: int
    name: str
    price: float
    slot: int


class ScheduleEntryOut(BaseModel):
    day: str
    weekday: int
    start: str
    end: str


class ProfessionalOut(BaseModel):
    id: int
    user_id: int
    name: str
    email: str = ""
    phone: str = ""
    services: list[ServiceAssignmentOut] = []
    schedule: list[ScheduleEntryOut] = []
