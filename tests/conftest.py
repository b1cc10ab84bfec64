import os

# settings é instanciado no import; precisa das variáveis antes
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("LOG_JSON", "false")

from datetime import UTC, date, datetime, time, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import salonbook.db.base  # noqa: F401
from salonbook.core.security import create_access_token
from salonbook.db.base_class import Base
from salonbook.models.professional import Professional, ServiceAssignment
from salonbook.models.schedule import ScheduleEntry
from salonbook.models.service import Service
from salonbook.models.user import Role, User
from salonbook.services.clients import create_client


# Banco SQLite em memória novo para cada teste
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def TestingSessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def override_get_db(TestingSessionLocal):
    def _override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    return _override_get_db


@pytest.fixture
def db_session(TestingSessionLocal):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(override_get_db, TestingSessionLocal):
    """Create a test client for API tests."""
    from fastapi.testclient import TestClient

    from salonbook.db import get_db, get_session_factory
    from salonbook.main import app

    app.dependency_overrides[get_db] = override_get_db
    # notificações em background usam o mesmo banco de teste
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.client_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def monday() -> date:
    """Uma segunda-feira pelo menos uma semana à frente (nunca 'passado')."""
    today = datetime.now(UTC).date()
    return today + timedelta(days=7 + (7 - today.weekday()) % 7)


@pytest.fixture
def salon(db_session):
    client = create_client(
        db_session,
        rif="J-12345678-9",
        name="Salón Bella",
        phone="+582120000000",
        address="Av. Principal 1",
    )
    db_session.commit()
    return client


@pytest.fixture
def other_salon(db_session, salon):
    client = create_client(db_session, rif="J-99999999-9", name="Outro Salão")
    db_session.commit()
    return client


def _user(db_session, **kwargs) -> User:
    user = User(is_active=True, **kwargs)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def owner(db_session, salon):
    return _user(
        db_session, name="Owner", email="owner@example.com", role=Role.OWNER, client_id=salon.id
    )


@pytest.fixture
def other_owner(db_session, other_salon):
    return _user(
        db_session,
        name="Other Owner",
        email="other-owner@example.com",
        role=Role.OWNER,
        client_id=other_salon.id,
    )


@pytest.fixture
def admin(db_session):
    return _user(db_session, name="Admin", email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def customer(db_session, salon):
    return _user(
        db_session,
        name="Maria Cliente",
        email="maria@example.com",
        phone="+584140000001",
        role=Role.USER,
        client_id=salon.id,
    )


@pytest.fixture
def services(db_session, salon):
    corte = Service(client_id=salon.id, name="Corte", price=15.0, slot=2)
    tintura = Service(client_id=salon.id, name="Tintura", price=40.0, slot=4)
    db_session.add_all([corte, tintura])
    db_session.commit()
    return corte, tintura


@pytest.fixture
def professional(db_session, salon, services):
    """Profissional com agenda de segunda 09:00-12:00; corte = 2 slots, tintura = 3."""
    corte, tintura = services
    user = _user(
        db_session,
        name="Ana Souza",
        email="ana@example.com",
        phone="+584120000001",
        role=Role.PRO,
        client_id=salon.id,
    )
    prof = Professional(client_id=salon.id, user_id=user.id, active=True)
    prof.services = [
        ServiceAssignment(service_id=corte.id, price=18.0, slot_count=2),
        ServiceAssignment(service_id=tintura.id, price=45.0, slot_count=3),
    ]
    prof.schedule = [ScheduleEntry(weekday=1, starts=time(9, 0), ends=time(12, 0))]
    db_session.add(prof)
    db_session.commit()
    db_session.refresh(prof)
    return prof


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def appointment_payload(salon, professional, services, customer, monday):
    def _payload(hour: int = 9, minute: int = 0, **overrides) -> dict:
        corte, _ = services
        start = datetime.combine(monday, time(hour, minute), tzinfo=UTC)
        payload = {
            "client_id": salon.id,
            "professional_id": professional.id,
            "user_id": customer.id,
            "start_date": start.isoformat().replace("+00:00", "Z"),
            "services": [{"service_id": corte.id}],
            "place": {
                "address": {"full": "Av. Principal 1"},
                "location": {"type": "Point", "coordinates": [-66.9, 10.5]},
            },
        }
        payload.update(overrides)
        return payload

    return _payload
