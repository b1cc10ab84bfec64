from __future__ import annotations

import datetime as dt

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salonbook.db.base_class import Base
from salonbook.db.types import UTCDateTime, utcnow


class Client(Base):
    """Tenant (salão). Dono dos profissionais, serviços e clientes finais."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    rif: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    denomination: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    # subconjunto de {"sms", "email"}
    communication_channels: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    professionals = relationship(
        "Professional", back_populates="client", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return self.name or self.denomination or "Cliente"
