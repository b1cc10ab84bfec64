from __future__ import annotations

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session, sessionmaker

from salonbook.core.errors import ForbiddenError
from salonbook.db import get_db, get_session_factory
from salonbook.deps import get_current_user
from salonbook.models.appointment import AppointmentStatus
from salonbook.models.user import User
from salonbook.schemas.appointments import (
    AppointmentCreateIn,
    AppointmentOut,
    AppointmentUpdateIn,
    DeleteOut,
    NotificationOut,
)
from salonbook.services.appointments import (
    cancel_appointment,
    create_appointment,
    get_appointment,
    list_appointments,
    to_out,
    update_appointment,
)
from salonbook.services.clients import tenant_scope
from salonbook.services.notifications import (
    notify_appointment_change,
    resend_confirmation,
    send_reminder,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
def create(
    payload: AppointmentCreateIn,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),  # noqa: B008
    session_factory: sessionmaker = Depends(get_session_factory),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    ap = create_appointment(db, payload, actor=current_user, request=request)
    # SMS/e-mail depois da resposta; falha não desfaz o agendamento
    background_tasks.add_task(notify_appointment_change, session_factory, ap.id, "created")
    return to_out(ap)


@router.get("", response_model=list[AppointmentOut])
def list_(
    client_id: int | None = Query(None, ge=1),
    professional_id: int | None = Query(None, ge=1),
    day: date | None = Query(None, alias="date"),
    status_: AppointmentStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    scope = tenant_scope(current_user)
    if scope is not None:
        if client_id is not None and client_id != scope:
            raise ForbiddenError("Sem acesso a este salão")
        client_id = scope
    rows = list_appointments(
        db,
        client_id=client_id,
        professional_id=professional_id,
        day=day,
        status=status_.value if status_ else None,
    )
    return [to_out(ap) for ap in rows]


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_one(
    appointment_id: int,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    return to_out(get_appointment(db, appointment_id, client_id=tenant_scope(current_user)))


@router.patch("/{appointment_id}", response_model=AppointmentOut)
def update(
    appointment_id: int,
    payload: AppointmentUpdateIn,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),  # noqa: B008
    session_factory: sessionmaker = Depends(get_session_factory),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    ap = update_appointment(db, appointment_id, payload, actor=current_user, request=request)
    background_tasks.add_task(notify_appointment_change, session_factory, ap.id, "updated")
    return to_out(ap)


@router.delete("/{appointment_id}", response_model=DeleteOut)
def delete(
    appointment_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),  # noqa: B008
    session_factory: sessionmaker = Depends(get_session_factory),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    ap = cancel_appointment(db, appointment_id, actor=current_user, request=request)
    background_tasks.add_task(notify_appointment_change, session_factory, ap.id, "deleted")
    return DeleteOut(success=True)


@router.post("/{appointment_id}/reminder", response_model=NotificationOut)
def reminder(
    appointment_id: int,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    return send_reminder(db, appointment_id, tenant_scope(current_user))


@router.post("/{appointment_id}/resend-confirmation", response_model=NotificationOut)
def resend(
    appointment_id: int,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    return resend_confirmation(db, appointment_id, tenant_scope(current_user))
