"""
Ciclo de vida do agendamento: criar, listar, consultar, alterar e cancelar.

Regras que valem para todas as operações:
- só agendamentos ``active`` são visíveis; cancelar = ``active=False``;
- o horário é sempre alinhado à grade de 15 min e revalidado contra a
  disponibilidade do profissional;
- o código de 6 dígitos é "último + 1" e o índice único faz o desempate.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from salonbook.audit.helpers import record_audit
from salonbook.core.errors import (
    BookingCodeConflict,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailure,
)
from salonbook.core.logging import get_logger
from salonbook.core.settings import settings
from salonbook.models.appointment import (
    Appointment,
    AppointmentServiceItem,
    AppointmentStatusEntry,
)
from salonbook.models.professional import Professional
from salonbook.models.service import Service
from salonbook.models.user import User
from salonbook.schemas.appointments import (
    AppointmentCreateIn,
    AppointmentOut,
    AppointmentUpdateIn,
    PlaceIn,
    ServiceItemIn,
)
from salonbook.services.availability import available_slots_for, normalize_slot_count
from salonbook.services.clients import ensure_tenant_access, get_active_client, tenant_scope
from salonbook.services.codes import allocate_booking_code
from salonbook.utils.slots import (
    SLOT_MINUTES,
    is_aligned,
    minutes_since_midnight,
    minutes_to_slot_index,
    minutes_to_time_str,
)
from salonbook.utils.tz import day_bounds_utc, to_utc

log = get_logger(component="appointments")

_SLOT_TAKEN = "Ops, este horário acabou de ser reservado. Escolha outro."


def _with_relations(query):
    return query.options(
        selectinload(Appointment.services).joinedload(AppointmentServiceItem.service),
        selectinload(Appointment.statuses),
        joinedload(Appointment.user),
        joinedload(Appointment.professional)
        .selectinload(Professional.services),
    )


# ---------------------------------------------------------------------------
# leitura
# ---------------------------------------------------------------------------


def get_appointment(
    db: Session, appointment_id: int, *, client_id: int | None = None
) -> Appointment:
    """Agendamento ativo pelo id; ``client_id`` restringe ao tenant (403)."""
    ap = _with_relations(db.query(Appointment)).filter(
        Appointment.id == appointment_id, Appointment.active.is_(True)
    ).one_or_none()
    if ap is None:
        raise NotFoundError("Agendamento não encontrado")
    ensure_same_tenant(ap, client_id)
    return ap


def ensure_same_tenant(ap: Appointment, client_id: int | None) -> None:
    if client_id is not None and ap.client_id != client_id:
        raise ForbiddenError("Sem acesso a este agendamento")


def list_appointments(
    db: Session,
    *,
    client_id: int | None = None,
    professional_id: int | None = None,
    day: date | None = None,
    status: str | None = None,
) -> list[Appointment]:
    q = _with_relations(db.query(Appointment)).filter(Appointment.active.is_(True))
    if client_id is not None:
        q = q.filter(Appointment.client_id == client_id)
    if professional_id is not None:
        q = q.filter(Appointment.professional_id == professional_id)
    if day is not None:
        start_utc, end_utc = day_bounds_utc(day)
        q = q.filter(Appointment.starts_at >= start_utc, Appointment.starts_at < end_utc)
    if status is not None:
        q = q.filter(Appointment.status == status)
    return q.order_by(Appointment.starts_at.asc(), Appointment.id.asc()).all()


def to_out(ap: Appointment) -> AppointmentOut:
    """Serializa com os campos desnormalizados usados pelas telas."""
    assignments = {}
    if ap.professional is not None:
        assignments = {a.service_id: a for a in ap.professional.services}

    names: list[str] = []
    prices: list[float | None] = []
    slots: list[int] = []
    for item in ap.services:
        service = item.service
        assignment = assignments.get(item.service_id)
        names.append(service.name if service else "")
        if item.price is not None:
            prices.append(item.price)
        elif assignment is not None:
            prices.append(assignment.price)
        else:
            prices.append(service.price if service else None)
        if assignment is not None:
            slots.append(assignment.slot_count)
        else:
            slots.append(service.slot if service else 1)

    return AppointmentOut(
        id=ap.id,
        code=ap.code,
        client_id=ap.client_id,
        professional_id=ap.professional_id,
        user_id=ap.user_id,
        start_date=ap.starts_at,
        end_date=ap.ends_at,
        slots=ap.slots,
        slot_start=ap.slot_start,
        slot_end=ap.slot_end,
        services=[{"service_id": i.service_id, "price": i.price} for i in ap.services],
        status=ap.status,
        amount=ap.amount,
        notes=ap.notes or "",
        type=ap.type,
        place={
            "address": ap.place_address or {},
            "location": {"type": "Point", "coordinates": [ap.place_lng, ap.place_lat]},
        },
        active=ap.active,
        statuses=[
            {"status": s.status, "date": s.date, "comment": s.comment}
            for s in ap.statuses
        ],
        created_at=ap.created_at,
        updated_at=ap.updated_at,
        service_names=names,
        service_prices=prices,
        service_slots=slots,
        client_name=ap.user.name if ap.user else None,
        client_phone=ap.user.phone if ap.user else None,
        professional_name=ap.professional.name if ap.professional else None,
    )


# ---------------------------------------------------------------------------
# validações
# ---------------------------------------------------------------------------


def _resolve_professional(db: Session, client_id: int, professional_id: int) -> Professional:
    prof = db.get(Professional, professional_id)
    if prof is None or not prof.active:
        raise NotFoundError("Profissional não encontrado")
    if prof.client_id != client_id:
        raise ValidationFailure("Profissional não pertence a este salão")
    return prof


def _resolve_services(db: Session, client_id: int, items: list[ServiceItemIn]) -> list[Service]:
    services: list[Service] = []
    for item in items:
        service = db.get(Service, item.service_id)
        if service is None or not service.active or service.client_id != client_id:
            raise ValidationFailure(f"Serviço {item.service_id} inválido para este salão")
        services.append(service)
    return services


def _resolve_user(db: Session, user_id: int | None) -> User | None:
    if user_id is None:
        return None
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise NotFoundError("Usuário não encontrado")
    return user


def _slot_count_for(
    slots: int | None, professional: Professional | None, services: list[Service]
) -> int:
    """Slots informados ou soma da duração dos serviços (a do profissional, se houver)."""
    if slots is not None:
        return normalize_slot_count(slots)
    total = 0
    for service in services:
        assignment = professional.assignment_for(service.id) if professional else None
        total += assignment.slot_count if assignment is not None else service.slot
    return normalize_slot_count(total)


def _check_alignment(start: datetime) -> None:
    if start.second or start.microsecond or not is_aligned(minutes_since_midnight(start)):
        raise ValidationFailure(
            f"Início precisa estar na grade de {SLOT_MINUTES} minutos (ex.: 09:00, 09:15)"
        )


def _check_slot_available(
    db: Session,
    professional: Professional,
    start: datetime,
    slot_count: int,
    now: datetime,
    editing: Appointment | None = None,
) -> None:
    available = available_slots_for(
        db, professional, start.date(), slot_count, now, editing=editing
    )
    if minutes_to_time_str(minutes_since_midnight(start)) not in available:
        raise ConflictError("Horário indisponível para este profissional")


def _apply_times(ap: Appointment, start: datetime, slot_count: int) -> None:
    ap.starts_at = start
    ap.ends_at = start + timedelta(minutes=slot_count * SLOT_MINUTES)
    ap.slots = slot_count
    ap.slot_start = minutes_to_slot_index(minutes_since_midnight(start))
    ap.slot_end = ap.slot_start + slot_count


def _apply_place(ap: Appointment, place: PlaceIn) -> None:
    ap.place_address = place.address.model_dump()
    ap.place_lng, ap.place_lat = place.location.coordinates


def _service_items(items: list[ServiceItemIn]) -> list[AppointmentServiceItem]:
    return [
        AppointmentServiceItem(position=i, service_id=item.service_id, price=item.price)
        for i, item in enumerate(items)
    ]


def _constraint_message(e: IntegrityError) -> str:
    return str(getattr(e, "orig", e))


def _is_code_conflict(e: IntegrityError) -> bool:
    msg = _constraint_message(e)
    return "uq_appointments_code" in msg or "appointments.code" in msg


def _is_slot_conflict(e: IntegrityError) -> bool:
    msg = _constraint_message(e)
    return "ux_appt_prof_start_active" in msg or "appointments.professional_id" in msg


# ---------------------------------------------------------------------------
# escrita
# ---------------------------------------------------------------------------


def create_appointment(
    db: Session,
    payload: AppointmentCreateIn,
    *,
    actor: User,
    request: Request | None = None,
    now: datetime | None = None,
) -> Appointment:
    now = to_utc(now) if now is not None else datetime.now(UTC)
    ensure_tenant_access(actor, payload.client_id)
    get_active_client(db, payload.client_id)

    services = _resolve_services(db, payload.client_id, payload.services)
    professional = (
        _resolve_professional(db, payload.client_id, payload.professional_id)
        if payload.professional_id is not None
        else None
    )
    _resolve_user(db, payload.user_id)

    start = payload.start_date
    _check_alignment(start)
    slot_count = _slot_count_for(payload.slots, professional, services)
    expected_end = start + timedelta(minutes=slot_count * SLOT_MINUTES)
    if payload.end_date is not None and payload.end_date != expected_end:
        raise ValidationFailure(
            f"end_date não confere com {slot_count} slot(s) a partir do início"
        )
    if professional is not None:
        _check_slot_available(db, professional, start, slot_count, now)

    attempts = max(settings.BOOKING_CODE_RETRIES, 0) + 1
    for attempt in range(1, attempts + 1):
        code = allocate_booking_code(db)
        ap = Appointment(
            code=code,
            client_id=payload.client_id,
            professional_id=payload.professional_id,
            user_id=payload.user_id,
            status=payload.status.value,
            amount=payload.amount,
            notes=payload.notes,
            type=payload.type,
            active=True,
            reminder_sent=False,
        )
        _apply_times(ap, start, slot_count)
        _apply_place(ap, payload.place)
        ap.services = _service_items(payload.services)
        ap.statuses = [AppointmentStatusEntry(status=ap.status, date=now)]
        db.add(ap)
        try:
            db.flush()
            record_audit(
                db,
                request=request,
                user_id=actor.id,
                client_id=ap.client_id,
                action="APPOINTMENT_CREATE",
                entity="appointment",
                entity_id=ap.id,
            )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _is_code_conflict(e):
                log.warning("appointment.code_conflict", code=code, attempt=attempt)
                if attempt < attempts:
                    continue
                raise BookingCodeConflict(code) from e
            if _is_slot_conflict(e):
                raise ConflictError(_SLOT_TAKEN) from e
            raise
        break

    log.info(
        "appointment.created",
        appointment_id=ap.id,
        code=ap.code,
        professional_id=ap.professional_id,
        starts_at=ap.starts_at.isoformat(),
    )
    db.expire_all()
    return get_appointment(db, ap.id)


def update_appointment(
    db: Session,
    appointment_id: int,
    payload: AppointmentUpdateIn,
    *,
    actor: User,
    request: Request | None = None,
    now: datetime | None = None,
) -> Appointment:
    """
    Atualização parcial. Só campos enviados são aplicados; ``active`` nunca é
    alterado por aqui (cancelamento tem rota própria).
    """
    now = to_utc(now) if now is not None else datetime.now(UTC)
    ap = get_appointment(db, appointment_id, client_id=tenant_scope(actor))
    data = payload.model_dump(exclude_unset=True)

    professional = ap.professional
    if "professional_id" in data:
        professional = (
            _resolve_professional(db, ap.client_id, payload.professional_id)
            if payload.professional_id is not None
            else None
        )
    if "user_id" in data:
        _resolve_user(db, payload.user_id)

    services = [item.service for item in ap.services]
    if payload.services is not None:
        services = _resolve_services(db, ap.client_id, payload.services)

    start = payload.start_date if payload.start_date is not None else ap.starts_at
    if payload.start_date is not None:
        _check_alignment(start)

    if payload.slots is not None:
        slot_count = normalize_slot_count(payload.slots)
    elif payload.services is not None:
        slot_count = _slot_count_for(None, professional, services)
    else:
        slot_count = ap.slots

    moved = (
        start != ap.starts_at
        or slot_count != ap.slots
        or (professional.id if professional else None) != ap.professional_id
    )
    # valida antes de mexer no objeto: o resolvedor usa o horário original
    if moved and professional is not None:
        _check_slot_available(db, professional, start, slot_count, now, editing=ap)

    if "professional_id" in data:
        ap.professional_id = payload.professional_id
        ap.professional = professional
    if "user_id" in data:
        ap.user_id = payload.user_id
    if payload.services is not None:
        ap.services = _service_items(payload.services)
    _apply_times(ap, start, slot_count)

    if payload.status is not None and payload.status.value != ap.status:
        previous = ap.status
        ap.status = payload.status.value
        ap.statuses.append(
            AppointmentStatusEntry(
                status=ap.status, date=now, comment=payload.status_comment
            )
        )
        log.info(
            "appointment.status_changed",
            appointment_id=ap.id,
            previous=previous,
            status=ap.status,
        )

    if "amount" in data:
        ap.amount = payload.amount
    if payload.notes is not None:
        ap.notes = payload.notes
    if "type" in data:
        ap.type = payload.type
    if payload.place is not None:
        _apply_place(ap, payload.place)

    record_audit(
        db,
        request=request,
        user_id=actor.id,
        client_id=ap.client_id,
        action="APPOINTMENT_UPDATE",
        entity="appointment",
        entity_id=ap.id,
    )
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_slot_conflict(e):
            raise ConflictError(_SLOT_TAKEN) from e
        raise

    log.info("appointment.updated", appointment_id=ap.id, fields=sorted(data))
    db.expire_all()
    return get_appointment(db, ap.id)


def cancel_appointment(
    db: Session,
    appointment_id: int,
    *,
    actor: User,
    request: Request | None = None,
) -> Appointment:
    """Cancelamento lógico: o registro fica, mas some de todas as leituras."""
    ap = get_appointment(db, appointment_id, client_id=tenant_scope(actor))
    ap.active = False
    record_audit(
        db,
        request=request,
        user_id=actor.id,
        client_id=ap.client_id,
        action="APPOINTMENT_CANCEL",
        entity="appointment",
        entity_id=ap.id,
    )
    db.commit()
    log.info("appointment.canceled", appointment_id=ap.id, code=ap.code)
    return ap
