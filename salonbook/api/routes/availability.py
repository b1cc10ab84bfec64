from __future__ import annotations

from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salonbook.core.logging import get_logger
from salonbook.db import get_db
from salonbook.deps import get_current_user
from salonbook.models.user import User
from salonbook.schemas.availability import AvailabilityOut
from salonbook.services.appointments import get_appointment
from salonbook.services.availability import available_slots_for, requested_slot_count
from salonbook.services.clients import ensure_tenant_access, tenant_scope
from salonbook.services.professionals import get_professional
from salonbook.utils.slots import SLOT_MINUTES

router = APIRouter(prefix="/professionals", tags=["availability"])
log = get_logger(component="availability")


@router.get("/{professional_id}/availability", response_model=AvailabilityOut)
def availability(
    professional_id: int,
    day: date = Query(..., alias="date"),
    service_id: int | None = Query(None, ge=1),
    slots: int | None = Query(None),
    appointment_id: int | None = Query(None, ge=1, description="agendamento em edição"),
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    professional = get_professional(db, professional_id)
    ensure_tenant_access(current_user, professional.client_id)
    slot_count = requested_slot_count(professional, service_id, slots)
    editing = (
        get_appointment(db, appointment_id, client_id=tenant_scope(current_user))
        if appointment_id is not None
        else None
    )
    result = available_slots_for(
        db, professional, day, slot_count, datetime.now(UTC), editing=editing
    )
    log.info(
        "availability.resolved",
        professional_id=professional_id,
        date=day.isoformat(),
        slot_count=slot_count,
        found=len(result),
    )
    return AvailabilityOut(
        professional_id=professional_id,
        date=day,
        slot_minutes=SLOT_MINUTES,
        slot_count=slot_count,
        slots=result,
    )
