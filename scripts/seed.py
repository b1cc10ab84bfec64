# scripts/seed.py
from __future__ import annotations

import os
import random
from datetime import UTC, datetime, time, timedelta

from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

import salonbook.db.base  # noqa: F401
from salonbook.core.errors import DomainError
from salonbook.core.security import create_access_token
from salonbook.db import get_db
from salonbook.models.client import Client
from salonbook.models.service import Service
from salonbook.models.user import Role, User
from salonbook.schemas.appointments import (
    AppointmentCreateIn,
    PlaceIn,
    PlaceLocationIn,
    ServiceItemIn,
)
from salonbook.schemas.professionals import (
    ProfessionalUpsertIn,
    ScheduleEntryIn,
    ServiceAssignmentIn,
)
from salonbook.services.appointments import create_appointment
from salonbook.services.availability import available_slots_for
from salonbook.services.clients import create_client
from salonbook.services.professionals import upsert_professional

# ---------------- Configuráveis por ENV ----------------
SEED_DAYS = int(os.getenv("SEED_DAYS", "7"))
SEED_RIF = os.getenv("SEED_RIF", "J-00000001-0")

# ---------------- Dados de Exemplo ----------------
SERVICES_DATA = [
    {"name": "Corte", "price": 15.0, "slot": 2},
    {"name": "Tintura", "price": 40.0, "slot": 6},
    {"name": "Manicure", "price": 10.0, "slot": 3},
]

PROFESSIONALS_DATA = [
    {"name": "Ana Souza", "email": "ana@example.com", "phone": "+584121110001"},
    {"name": "Bruno Lima", "email": "bruno@example.com", "phone": "+584121110002"},
]

# seg/qua/sex manhã e tarde, ter/qui só tarde (turno partido)
SCHEDULE = [
    ("monday", "09:00", "12:00"),
    ("monday", "14:00", "18:00"),
    ("tuesday", "14:00", "18:00"),
    ("wednesday", "09:00", "12:00"),
    ("wednesday", "14:00", "18:00"),
    ("thursday", "14:00", "18:00"),
    ("friday", "09:00", "12:00"),
    ("friday", "14:00", "18:00"),
]

CUSTOMERS_DATA = [
    ("Marcos Lima", "+584141230001"),
    ("Patrícia Alves", "+584141230002"),
    ("Roberta Dias", "+584141230003"),
]


def get_session() -> Session:
    gen = get_db()
    session: Session = next(gen)
    return session


def ensure_user(
    db: Session, *, name: str, email: str, role: Role, client_id: int | None, phone: str = ""
) -> User:
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        return user
    user = User(name=name, email=email, role=role, client_id=client_id, phone=phone)
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"[Seed] User criado: {user.name} ({user.email}) - Role: {user.role.value}")
    return user


def ensure_salon(db: Session) -> Client:
    client = db.execute(select(Client).where(Client.rif == SEED_RIF)).scalar_one_or_none()
    if client:
        return client
    client = create_client(
        db,
        rif=SEED_RIF,
        name="Salón Bella Vista",
        phone="+582121234567",
        email="contacto@bellavista.example.com",
        address="Av. Principal, Caracas",
        communication_channels=["sms", "email"],
    )
    db.commit()
    print(f"[Seed] Salão criado: {client.name} (code={client.code})")
    return client


def ensure_services(db: Session, client: Client) -> list[Service]:
    services = []
    for data in SERVICES_DATA:
        service = db.execute(
            select(Service).where(Service.client_id == client.id, Service.name == data["name"])
        ).scalar_one_or_none()
        if not service:
            service = Service(client_id=client.id, **data)
            db.add(service)
            db.commit()
            print(f"[Seed] Serviço criado: {service.name}")
        services.append(service)
    return services


def ensure_professionals(db: Session, client: Client, services: list[Service], owner: User):
    professionals = []
    for data in PROFESSIONALS_DATA:
        payload = ProfessionalUpsertIn(
            **data,
            services=[
                ServiceAssignmentIn(service_id=s.id, price=s.price, slot=s.slot)
                for s in services
            ],
            schedule=[ScheduleEntryIn(day=d, start=s, end=e) for d, s, e in SCHEDULE],
        )
        prof = upsert_professional(db, client.id, payload, actor=owner)
        print(f"[Seed] Profissional pronto: {prof.name}")
        professionals.append(prof)
    return professionals


def ensure_appointments(db, client, services, professionals, customers, owner):
    print("[Seed] Gerando agendamentos...")
    now = datetime.now(UTC)
    total = 0
    for offset in range(1, SEED_DAYS + 1):
        day = (now + timedelta(days=offset)).date()
        for prof in professionals:
            service = random.choice(services)
            slot_count = prof.assignment_for(service.id).slot_count
            free = available_slots_for(db, prof, day, slot_count, now)
            if not free:
                continue
            hh, mm = map(int, random.choice(free).split(":"))
            payload = AppointmentCreateIn(
                client_id=client.id,
                professional_id=prof.id,
                user_id=random.choice(customers).id,
                start_date=datetime.combine(day, time(hh, mm), tzinfo=UTC),
                services=[ServiceItemIn(service_id=service.id)],
                place=PlaceIn(
                    location=PlaceLocationIn(coordinates=[-66.9036, 10.4806])
                ),
            )
            try:
                create_appointment(db, payload, actor=owner, now=now)
            except DomainError as e:
                print(f"[Seed] Pulando {day} {hh:02d}:{mm:02d}: {e.detail}")
                continue
            total += 1
    print(f"[Seed] {total} agendamentos criados.")


def check_tables_exist(db: Session) -> bool:
    required_tables = ["clients", "users", "services", "professionals", "appointments"]
    try:
        for table in required_tables:
            db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))
        return True
    except (ProgrammingError, OperationalError):
        return False


def main():
    print("[Seed] Iniciando seed do banco de dados...")
    db = None
    try:
        db = get_session()
        if not check_tables_exist(db):
            print("[Seed] Erro: tabelas não encontradas. Rode `alembic upgrade head` antes.")
            return

        client = ensure_salon(db)
        owner = ensure_user(
            db,
            name="Dona do Salão",
            email="owner@example.com",
            role=Role.OWNER,
            client_id=client.id,
        )
        services = ensure_services(db, client)
        professionals = ensure_professionals(db, client, services, owner)
        customers = [
            ensure_user(
                db,
                name=name,
                email=f"cliente{i + 1}@example.com",
                role=Role.USER,
                client_id=client.id,
                phone=phone,
            )
            for i, (name, phone) in enumerate(CUSTOMERS_DATA)
        ]
        ensure_appointments(db, client, services, professionals, customers, owner)

        print("\n[Seed] Concluído!")
        print("-------------------------------------------------")
        print(f"client_id={client.id}")
        print(f"Token do owner: {create_access_token(str(owner.id), client.id)}")
        print("-------------------------------------------------")
    except Exception as e:
        print(f"[Seed] Erro durante o seed: {e}")
        raise
    finally:
        if db:
            db.close()


if __name__ == "__main__":
    main()
