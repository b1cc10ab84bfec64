from __future__ import annotations

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from salonbook.audit.helpers import record_audit
from salonbook.core.errors import ConflictError, NotFoundError, ValidationFailure
from salonbook.core.logging import get_logger
from salonbook.models.professional import Professional, ServiceAssignment
from salonbook.models.schedule import ScheduleEntry
from salonbook.models.service import Service
from salonbook.models.user import Role, User
from salonbook.schemas.professionals import (
    ProfessionalOut,
    ProfessionalUpsertIn,
    ScheduleEntryIn,
    ServiceAssignmentIn,
)
from salonbook.services.clients import get_active_client
from salonbook.utils.slots import parse_aligned_time
from salonbook.utils.week import normalize_weekday, weekday_key

log = get_logger(component="professionals")


def to_out(prof: Professional) -> ProfessionalOut:
    user = prof.user
    schedule = sorted(prof.schedule, key=lambda e: (e.weekday, e.starts))
    return ProfessionalOut(
        id=prof.id,
        user_id=prof.user_id,
        name=prof.name,
        email=user.email if user else "",
        phone=user.phone if user else "",
        services=[
            {
                "service_id": a.service_id,
                "name": a.service.name if a.service else "",
                "price": a.price,
                "slot": a.slot_count,
            }
            for a in prof.services
        ],
        schedule=[
            {
                "day": weekday_key(e.weekday),
                "weekday": e.weekday,
                "start": e.starts.strftime("%H:%M"),
                "end": e.ends.strftime("%H:%M"),
            }
            for e in schedule
        ],
    )


def list_professionals(db: Session, client_id: int) -> list[Professional]:
    get_active_client(db, client_id)
    return (
        db.query(Professional)
        .options(selectinload(Professional.services), selectinload(Professional.schedule))
        .filter(Professional.client_id == client_id, Professional.active.is_(True))
        .order_by(Professional.id.asc())
        .all()
    )


def get_professional(db: Session, professional_id: int) -> Professional:
    prof = db.get(Professional, professional_id)
    if prof is None or not prof.active:
        raise NotFoundError("Profissional não encontrado")
    return prof


def _resolve_user(db: Session, client_id: int, payload: ProfessionalUpsertIn) -> User:
    user: User | None = None
    if payload.user_id is not None:
        user = db.get(User, payload.user_id)
        if user is None:
            raise NotFoundError("Usuário não encontrado")
    elif payload.email:
        user = (
            db.query(User)
            .filter(func.lower(User.email) == payload.email.lower())
            .one_or_none()
        )

    if user is None:
        if not payload.name or not payload.email:
            raise ValidationFailure("Informe user_id ou nome e e-mail do profissional")
        user = User(
            name=payload.name,
            email=payload.email.lower(),
            phone=payload.phone or "",
            role=Role.PRO,
            client_id=client_id,
        )
        db.add(user)
        db.flush()
        return user

    if user.client_id is not None and user.client_id != client_id:
        raise ConflictError("Usuário já vinculado a outro salão")
    user.client_id = client_id
    if payload.name:
        user.name = payload.name
    if payload.phone is not None:
        user.phone = payload.phone
    return user


def _assignments(
    db: Session, client_id: int, items: list[ServiceAssignmentIn]
) -> list[ServiceAssignment]:
    seen: set[int] = set()
    result: list[ServiceAssignment] = []
    for item in items:
        if item.service_id in seen:
            raise ValidationFailure(f"Serviço {item.service_id} repetido")
        seen.add(item.service_id)
        service = db.get(Service, item.service_id)
        if service is None or service.client_id != client_id:
            raise ValidationFailure(f"Serviço {item.service_id} inválido para este salão")
        result.append(
            ServiceAssignment(
                service_id=item.service_id, price=item.price, slot_count=item.slot
            )
        )
    return result


def _schedule(items: list[ScheduleEntryIn]) -> list[ScheduleEntry]:
    result: list[ScheduleEntry] = []
    for item in items:
        try:
            weekday = normalize_weekday(item.day)
            starts = parse_aligned_time(item.start)
            ends = parse_aligned_time(item.end)
        except ValueError as e:
            raise ValidationFailure(str(e)) from e
        if ends <= starts:
            raise ValidationFailure(f"Faixa {item.start}-{item.end} inválida")
        result.append(ScheduleEntry(weekday=weekday, starts=starts, ends=ends))
    return result


def upsert_professional(
    db: Session,
    client_id: int,
    payload: ProfessionalUpsertIn,
    *,
    actor: User,
    request: Request | None = None,
) -> Professional:
    """
    Cria ou atualiza o profissional do salão. Serviços e agenda enviados
    substituem os anteriores por completo.
    """
    get_active_client(db, client_id)
    # valida tudo antes de gravar qualquer coisa
    assignments = _assignments(db, client_id, payload.services)
    schedule = _schedule(payload.schedule)
    user = _resolve_user(db, client_id, payload)

    prof = (
        db.query(Professional)
        .filter(Professional.client_id == client_id, Professional.user_id == user.id)
        .one_or_none()
    )
    created = prof is None
    if prof is None:
        prof = Professional(client_id=client_id, user_id=user.id, active=True)
        db.add(prof)
    else:
        prof.active = True
        # remove os filhos antigos antes de inserir (uq_prof_service)
        prof.services.clear()
        prof.schedule.clear()
    db.flush()

    prof.services.extend(assignments)
    prof.schedule.extend(schedule)
    db.flush()

    record_audit(
        db,
        request=request,
        user_id=actor.id,
        client_id=client_id,
        action="PROFESSIONAL_CREATE" if created else "PROFESSIONAL_UPDATE",
        entity="professional",
        entity_id=prof.id,
    )
    db.commit()
    db.refresh(prof)
    log.info(
        "professional.upserted",
        professional_id=prof.id,
        created=created,
        services=len(assignments),
        schedule_entries=len(schedule),
    )
    return prof


def remove_professional(
    db: Session,
    client_id: int,
    professional_id: int,
    *,
    actor: User,
    request: Request | None = None,
) -> None:
    get_active_client(db, client_id)
    prof = (
        db.query(Professional)
        .filter(
            Professional.id == professional_id,
            Professional.client_id == client_id,
            Professional.active.is_(True),
        )
        .one_or_none()
    )
    if prof is None:
        raise NotFoundError("Profissional não encontrado")
    prof.active = False
    record_audit(
        db,
        request=request,
        user_id=actor.id,
        client_id=client_id,
        action="PROFESSIONAL_REMOVE",
        entity="professional",
        entity_id=prof.id,
    )
    db.commit()
    log.info("professional.removed", professional_id=prof.id, client_id=client_id)
