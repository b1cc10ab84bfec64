from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salonbook.db.base_class import Base
from salonbook.db.types import UTCDateTime, utcnow


class Role(str, enum.Enum):
    USER = "user"
    PRO = "pro"
    OWNER = "owner"
    ADMIN = "admin"
    STAFF = "staff"


# papéis do backoffice enxergam todos os tenants
BACKOFFICE_ROLES = frozenset({Role.ADMIN, Role.STAFF})


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, index=True, nullable=False
    )
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )
    client_id: Mapped[int | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL"), index=True, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    client = relationship("Client", foreign_keys=[client_id])

    @property
    def is_backoffice(self) -> bool:
        return self.role in BACKOFFICE_ROLES
