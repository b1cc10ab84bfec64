from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salonbook.db.base_class import Base
from salonbook.db.types import UTCDateTime, utcnow


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    SHOW = "show"
    NO_SHOW = "no_show"
    CANCELED = "canceled"
    COMPLETED = "completed"


# status que ainda recebem lembrete
REMINDABLE_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False
    )
    professional_id: Mapped[int | None] = mapped_column(
        ForeignKey("professionals.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    starts_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False)
    ends_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False)
    slots: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_start: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_end: Mapped[int] = mapped_column(Integer, nullable=False)

    # texto livre no banco; a API restringe aos valores de AppointmentStatus
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value
    )
    amount: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str | None] = mapped_column(String(40))

    place_address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    place_lng: Mapped[float] = mapped_column(Float, nullable=False)
    place_lat: Mapped[float] = mapped_column(Float, nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    client = relationship("Client")
    professional = relationship("Professional")
    user = relationship("User")
    services = relationship(
        "AppointmentServiceItem",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentServiceItem.position",
    )
    statuses = relationship(
        "AppointmentStatusEntry",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentStatusEntry.id",
    )

    __table_args__ = (
        Index("uq_appointments_code", "code", unique=True),
        # só um agendamento ativo por (profissional, início); sobreposição parcial
        # continua sendo barrada pelo resolvedor de disponibilidade
        Index(
            "ux_appt_prof_start_active",
            "professional_id",
            "starts_at",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
        CheckConstraint("ends_at > starts_at", name="ck_appt_time_order"),
        CheckConstraint("slots >= 1", name="ck_appt_slots"),
        CheckConstraint("slot_end - slot_start = slots", name="ck_appt_slot_span"),
        Index("ix_appt_client_id", "client_id"),
        Index("ix_appt_professional_day", "professional_id", "starts_at"),
        Index("ix_appt_created_at", "created_at"),
    )


class AppointmentServiceItem(Base):
    __tablename__ = "appointment_services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    price: Mapped[float | None] = mapped_column(Float)

    appointment = relationship("Appointment", back_populates="services")
    service = relationship("Service", lazy="joined")


class AppointmentStatusEntry(Base):
    """Histórico append-only de mudanças de status."""

    __tablename__ = "appointment_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    date: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    comment: Mapped[str | None] = mapped_column(String(300))

    appointment = relationship("Appointment", back_populates="statuses")
