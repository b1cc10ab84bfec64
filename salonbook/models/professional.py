from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salonbook.db.base_class import Base
from salonbook.db.types import UTCDateTime, utcnow


class Professional(Base):
    """Vínculo de um usuário (papel ``pro``) com um tenant."""

    __tablename__ = "professionals"
    __table_args__ = (
        UniqueConstraint("client_id", "user_id", name="uq_professional_client_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), index=True, nullable=False
    )
    # remover do salão = tirar da lista (active=False); histórico fica intacto
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    client = relationship("Client", back_populates="professionals")
    user = relationship("User", lazy="joined")
    services = relationship(
        "ServiceAssignment",
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="ServiceAssignment.id",
    )
    schedule = relationship(
        "ScheduleEntry",
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="ScheduleEntry.id",
    )

    @property
    def name(self) -> str:
        return self.user.name if self.user else "Profissional"

    def assignment_for(self, service_id: int) -> ServiceAssignment | None:
        for item in self.services:
            if item.service_id == service_id:
                return item
        return None


class ServiceAssignment(Base):
    """Preço e duração (em slots) de um serviço quando feito por este profissional."""

    __tablename__ = "professional_services"
    __table_args__ = (
        UniqueConstraint("professional_id", "service_id", name="uq_prof_service"),
        CheckConstraint("price >= 0", name="ck_prof_service_price"),
        CheckConstraint("slot_count >= 1", name="ck_prof_service_slots"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    slot_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    professional = relationship("Professional", back_populates="services")
    service = relationship("Service", lazy="joined")
