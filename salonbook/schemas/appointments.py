from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from salonbook.models.appointment import AppointmentStatus
from salonbook.utils.tz import to_utc


class PlaceAddressIn(BaseModel):
    full: str = ""
    street: str = ""
    number: str = ""
    province: str = ""
    comunity: str = ""
    city: str = ""
    postal: str = ""
    place_id: str = ""


class PlaceLocationIn(BaseModel):
    type: Literal["Point"] = "Point"
    # [lng, lat], como no GeoJSON
    coordinates: list[float] = Field(..., min_length=2, max_length=2)


class PlaceIn(BaseModel):
    address: PlaceAddressIn = Field(default_factory=PlaceAddressIn)
    location: PlaceLocationIn


class ServiceItemIn(BaseModel):
    service_id: int = Field(..., ge=1)
    price: float | None = Field(None, ge=0)


def _as_utc(value: datetime | None) -> datetime | None:
    # sem TZ interpretamos como UTC (convenção única do sistema)
    return to_utc(value) if value is not None else None


class AppointmentCreateIn(BaseModel):
    client_id: int = Field(..., ge=1)
    professional_id: int | None = Field(None, ge=1)
    user_id: int | None = Field(None, ge=1)
    start_date: datetime = Field(..., description="ISO-8601; preferir UTC com sufixo Z")
    end_date: datetime | None = Field(
        None, description="Opcional; se vier, precisa bater com start_date + slots"
    )
    # <= 0 é tratado como 1 slot
    slots: int | None = None
    services: list[ServiceItemIn] = Field(..., min_length=1)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    amount: float | None = Field(None, ge=0)
    notes: str = ""
    type: str | None = None
    place: PlaceIn

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc_dates(cls, value):
        return _as_utc(value)


class AppointmentUpdateIn(BaseModel):
    professional_id: int | None = Field(None, ge=1)
    user_id: int | None = Field(None, ge=1)
    start_date: datetime | None = None
    slots: int | None = None
    services: list[ServiceItemIn] | None = Field(None, min_length=1)
    status: AppointmentStatus | None = None
    status_comment: str | None = Field(None, max_length=300)
    amount: float | None = Field(None, ge=0)
    notes: str | None = None
    type: str | None = None
    place: PlaceIn | None = None

    @field_validator("start_date")
    @classmethod
    def _utc_dates(cls, value):
        return _as_utc(value)


class ServiceItemOut(BaseModel):
    service_id: int
    price: float | None = None


class StatusEntryOut(BaseModel):
    status: str
    date: datetime
    comment: str | None = None


class PlaceOut(BaseModel):
    address: dict
    location: PlaceLocationIn


class AppointmentOut(BaseModel):
    id: int
    code: str
    client_id: int
    professional_id: int | None = None
    user_id: int | None = None
    start_date: datetime
    end_date: datetime
    slots: int
    slot_start: int
    slot_end: int
    services: list[ServiceItemOut]
    status: str
    amount: float | None = None
    notes: str = ""
    type: str | None = None
    place: PlaceOut
    active: bool
    statuses: list[StatusEntryOut] = []
    created_at: datetime
    updated_at: datetime

    # campos desnormalizados para exibição
    service_names: list[str] = []
    service_prices: list[float | None] = []
    service_slots: list[int] = []
    client_name: str | None = None
    client_phone: str | None = None
    professional_name: str | None = None


class DeleteOut(BaseModel):
    success: bool = True


class NotificationOut(BaseModel):
    sent: bool
    channels: list[str] = []
    message: str | None = None
