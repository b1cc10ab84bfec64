from __future__ import annotations

import datetime as dt

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salonbook.db.base_class import Base


class ScheduleEntry(Base):
    """
    Janela semanal recorrente de um profissional (hora local do salão, sem fuso).
    Várias janelas no mesmo dia são permitidas (turno partido) e não são mescladas.
    """

    __tablename__ = "schedule_entries"
    __table_args__ = (
        CheckConstraint("weekday >= 1 AND weekday <= 7", name="ck_schedule_weekday"),
        CheckConstraint("ends > starts", name="ck_schedule_time_order"),
        Index("ix_schedule_professional_weekday", "professional_id", "weekday"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)  # ISO: 1=segunda ... 7=domingo
    starts: Mapped[dt.time] = mapped_column(Time(), nullable=False)
    ends: Mapped[dt.time] = mapped_column(Time(), nullable=False)

    professional = relationship("Professional", back_populates="schedule")
