from datetime import UTC, datetime, time, timedelta

import pytest
from fastapi import status
from sqlalchemy.exc import IntegrityError

from conftest import auth_headers
from salonbook.core.errors import BookingCodeConflict, ConflictError, NotFoundError
from salonbook.core.settings import settings
from salonbook.models.appointment import Appointment
from salonbook.models.audit_log import AuditLog
from salonbook.models.professional import Professional, ServiceAssignment
from salonbook.models.schedule import ScheduleEntry
from salonbook.models.user import Role, User
from salonbook.schemas.appointments import AppointmentCreateIn
from salonbook.services import appointments as appointments_service


def test_create_appointment(client, owner_headers, appointment_payload, professional):
    response = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["code"] == "000001"
    assert data["slots"] == 2  # corte = 2 slots para esta profissional
    assert data["slot_start"] == 36
    assert data["slot_end"] == 38
    assert data["end_date"].startswith(data["start_date"][:11])
    assert data["status"] == "scheduled"
    assert data["active"] is True
    assert data["professional_name"] == "Ana Souza"
    assert data["client_name"] == "Maria Cliente"
    assert data["service_names"] == ["Corte"]
    # sem preço no item vale o preço da profissional
    assert data["service_prices"] == [18.0]
    assert [s["status"] for s in data["statuses"]] == ["scheduled"]
    assert data["place"]["location"]["coordinates"] == [-66.9, 10.5]


def test_codes_increase_back_to_back(client, owner_headers, appointment_payload):
    first = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers)
    second = client.post("/api/v1/appointments", json=appointment_payload(10, 0), headers=owner_headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_201_CREATED
    assert first.json()["code"] == "000001"
    assert second.json()["code"] == "000002"
    assert int(second.json()["code"]) > int(first.json()["code"])


def test_create_overlapping_slot_is_409(client, owner_headers, appointment_payload):
    ok = client.post("/api/v1/appointments", json=appointment_payload(9, 30), headers=owner_headers)
    assert ok.status_code == status.HTTP_201_CREATED

    # 09:15 + 30 min encostaria em 09:30-10:00
    clash = client.post("/api/v1/appointments", json=appointment_payload(9, 15), headers=owner_headers)
    assert clash.status_code == status.HTTP_409_CONFLICT


def test_create_outside_schedule_is_409(client, owner_headers, appointment_payload):
    response = client.post(
        "/api/v1/appointments", json=appointment_payload(11, 45), headers=owner_headers
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_create_off_grid_start_is_400(client, owner_headers, appointment_payload):
    response = client.post(
        "/api/v1/appointments", json=appointment_payload(9, 10), headers=owner_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_create_mismatched_end_date_is_400(client, owner_headers, appointment_payload, monday):
    end = datetime.combine(monday, time(11, 0), tzinfo=UTC)
    response = client.post(
        "/api/v1/appointments",
        json=appointment_payload(end_date=end.isoformat()),
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_explicit_slots_below_one_count_as_one(client, owner_headers, appointment_payload):
    response = client.post(
        "/api/v1/appointments", json=appointment_payload(slots=0), headers=owner_headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["slots"] == 1
    assert response.json()["slot_end"] - response.json()["slot_start"] == 1


def test_unknown_status_is_rejected(client, owner_headers, appointment_payload):
    response = client.post(
        "/api/v1/appointments",
        json=appointment_payload(status="pending"),
        headers=owner_headers,
    )
    assert response.status_code == 422


def test_service_from_other_salon_is_400(
    client, db_session, owner_headers, appointment_payload, other_salon
):
    from salonbook.models.service import Service

    foreign = Service(client_id=other_salon.id, name="Alheio", price=1.0, slot=1)
    db_session.add(foreign)
    db_session.commit()

    response = client.post(
        "/api/v1/appointments",
        json=appointment_payload(services=[{"service_id": foreign.id}]),
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_other_tenant_cannot_create_or_read(
    client, owner_headers, other_owner, appointment_payload
):
    created = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers)
    ap_id = created.json()["id"]
    intruder = auth_headers(other_owner)

    assert (
        client.post("/api/v1/appointments", json=appointment_payload(10, 0), headers=intruder)
    ).status_code == status.HTTP_403_FORBIDDEN
    assert (
        client.get(f"/api/v1/appointments/{ap_id}", headers=intruder)
    ).status_code == status.HTTP_403_FORBIDDEN
    assert (
        client.delete(f"/api/v1/appointments/{ap_id}", headers=intruder)
    ).status_code == status.HTTP_403_FORBIDDEN


def test_backoffice_sees_every_tenant(client, owner_headers, admin, appointment_payload):
    client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers)

    response = client.get("/api/v1/appointments", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()) == 1


def test_list_filters(client, owner_headers, appointment_payload, monday, professional):
    client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers)
    client.post(
        "/api/v1/appointments",
        json=appointment_payload(10, 0, status="confirmed"),
        headers=owner_headers,
    )

    by_day = client.get(
        "/api/v1/appointments", params={"date": monday.isoformat()}, headers=owner_headers
    )
    assert [a["code"] for a in by_day.json()] == ["000001", "000002"]

    confirmed = client.get(
        "/api/v1/appointments", params={"status": "confirmed"}, headers=owner_headers
    )
    assert [a["code"] for a in confirmed.json()] == ["000002"]

    other_day = client.get(
        "/api/v1/appointments",
        params={"date": (monday + timedelta(days=1)).isoformat()},
        headers=owner_headers,
    )
    assert other_day.json() == []

    by_prof = client.get(
        "/api/v1/appointments",
        params={"professional_id": professional.id},
        headers=owner_headers,
    )
    assert len(by_prof.json()) == 2


def test_update_moves_and_revalidates(client, owner_headers, appointment_payload, monday):
    created = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers).json()
    client.post("/api/v1/appointments", json=appointment_payload(10, 0), headers=owner_headers)

    new_start = datetime.combine(monday, time(9, 15), tzinfo=UTC).isoformat()
    moved = client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"start_date": new_start},
        headers=owner_headers,
    )
    assert moved.status_code == status.HTTP_200_OK
    assert moved.json()["slot_start"] == 37
    assert moved.json()["slot_end"] == 39
    assert moved.json()["code"] == created["code"]

    clash_start = datetime.combine(monday, time(9, 45), tzinfo=UTC).isoformat()
    clash = client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"start_date": clash_start},
        headers=owner_headers,
    )
    assert clash.status_code == status.HTTP_409_CONFLICT


def _patch(client, headers, ap_id, **fields):
    return client.patch(f"/api/v1/appointments/{ap_id}", json=fields, headers=headers)


def test_update_longer_slots_into_neighbour_is_409(client, owner_headers, appointment_payload):
    created = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers).json()
    client.post("/api/v1/appointments", json=appointment_payload(9, 30), headers=owner_headers)

    clash = _patch(client, owner_headers, created["id"], slots=4)
    assert clash.status_code == status.HTTP_409_CONFLICT

    # nada foi alterado
    current = client.get(f"/api/v1/appointments/{created['id']}", headers=owner_headers).json()
    assert (current["slot_start"], current["slot_end"]) == (36, 38)

    same = _patch(client, owner_headers, created["id"], slots=2)
    assert same.status_code == status.HTTP_200_OK


def test_update_longer_slots_past_window_end_is_409(client, owner_headers, appointment_payload):
    created = client.post("/api/v1/appointments", json=appointment_payload(11, 30), headers=owner_headers).json()

    too_long = _patch(client, owner_headers, created["id"], slots=8)
    assert too_long.status_code == status.HTTP_409_CONFLICT

    fits = _patch(client, owner_headers, created["id"], slots=1)
    assert fits.status_code == status.HTTP_200_OK
    assert fits.json()["slot_end"] == 47


def test_update_services_revalidates_duration(client, owner_headers, appointment_payload, services):
    _, tintura = services
    created = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers).json()
    client.post("/api/v1/appointments", json=appointment_payload(9, 30), headers=owner_headers)

    # tintura = 3 slots nesta profissional: 09:00-09:45 invade o das 09:30
    clash = _patch(client, owner_headers, created["id"], services=[{"service_id": tintura.id}])
    assert clash.status_code == status.HTTP_409_CONFLICT


def test_update_professional_revalidates_schedule(
    client, owner_headers, appointment_payload, db_session, salon, services
):
    corte, _ = services
    created = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers).json()

    def _other(email, starts, ends):
        user = User(name=email, email=email, role=Role.PRO, client_id=salon.id, is_active=True)
        db_session.add(user)
        db_session.flush()
        prof = Professional(client_id=salon.id, user_id=user.id, active=True)
        prof.services = [ServiceAssignment(service_id=corte.id, price=20.0, slot_count=2)]
        prof.schedule = [ScheduleEntry(weekday=1, starts=starts, ends=ends)]
        db_session.add(prof)
        db_session.commit()
        return prof

    afternoon = _other("tarde@example.com", time(14, 0), time(18, 0))
    morning = _other("manha@example.com", time(8, 0), time(12, 0))

    closed = _patch(client, owner_headers, created["id"], professional_id=afternoon.id)
    assert closed.status_code == status.HTTP_409_CONFLICT

    moved = _patch(client, owner_headers, created["id"], professional_id=morning.id)
    assert moved.status_code == status.HTTP_200_OK
    assert moved.json()["professional_id"] == morning.id


def test_update_same_time_is_allowed(client, owner_headers, appointment_payload):
    created = client.post("/api/v1/appointments", json=appointment_payload(9, 0), headers=owner_headers).json()

    response = client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"notes": "trazer referência", "start_date": created["start_date"]},
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["notes"] == "trazer referência"


def test_status_change_appends_history(client, owner_headers, appointment_payload):
    created = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers).json()

    response = client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "confirmed", "status_comment": "confirmado por telefone"},
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    history = response.json()["statuses"]
    assert [h["status"] for h in history] == ["scheduled", "confirmed"]
    assert history[-1]["comment"] == "confirmado por telefone"

    # transições não são restritas: volta para scheduled é aceita
    back = client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "scheduled"},
        headers=owner_headers,
    )
    assert back.status_code == status.HTTP_200_OK
    assert len(back.json()["statuses"]) == 3


def test_cancel_then_everything_is_404(client, owner_headers, appointment_payload, db_session):
    created = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers).json()
    ap_id = created["id"]

    response = client.delete(f"/api/v1/appointments/{ap_id}", headers=owner_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}

    # registro continua no banco, só inativo
    row = db_session.get(Appointment, ap_id)
    db_session.refresh(row)
    assert row.active is False

    assert client.delete(f"/api/v1/appointments/{ap_id}", headers=owner_headers).status_code == 404
    assert (
        client.patch(f"/api/v1/appointments/{ap_id}", json={"notes": "x"}, headers=owner_headers)
    ).status_code == 404
    assert client.get(f"/api/v1/appointments/{ap_id}", headers=owner_headers).status_code == 404
    assert client.get("/api/v1/appointments", headers=owner_headers).json() == []


def test_canceled_slot_can_be_booked_again(client, owner_headers, appointment_payload):
    first = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers).json()
    client.delete(f"/api/v1/appointments/{first['id']}", headers=owner_headers)

    again = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers)
    assert again.status_code == status.HTTP_201_CREATED
    assert again.json()["code"] == "000002"


def test_create_writes_audit_log(client, owner_headers, appointment_payload, db_session, owner):
    created = client.post("/api/v1/appointments", json=appointment_payload(), headers=owner_headers).json()

    logs = db_session.query(AuditLog).filter(AuditLog.entity == "appointment").all()
    assert [(log.action, log.entity_id, log.user_id) for log in logs] == [
        ("APPOINTMENT_CREATE", created["id"], owner.id)
    ]


def _create_in(appointment_payload, hour):
    return AppointmentCreateIn.model_validate(appointment_payload(hour, 0))


class _DuplicateCode(IntegrityError):
    def __init__(self):
        super().__init__("INSERT", {}, Exception("UNIQUE constraint failed: appointments.code"))


def test_code_conflict_fails_fast_by_default(db_session, owner, appointment_payload, monkeypatch):
    monkeypatch.setattr(settings, "BOOKING_CODE_RETRIES", 0)

    def _boom(*args, **kwargs):
        raise _DuplicateCode()

    monkeypatch.setattr(db_session, "flush", _boom)
    with pytest.raises(BookingCodeConflict):
        appointments_service.create_appointment(
            db_session, _create_in(appointment_payload, 9), actor=owner
        )


def test_code_conflict_retries_when_configured(
    db_session, owner, appointment_payload, monkeypatch
):
    monkeypatch.setattr(settings, "BOOKING_CODE_RETRIES", 2)
    real_flush = db_session.flush
    calls = {"n": 0}

    def _flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise _DuplicateCode()
        return real_flush(*args, **kwargs)

    monkeypatch.setattr(db_session, "flush", _flaky)
    ap = appointments_service.create_appointment(
        db_session, _create_in(appointment_payload, 9), actor=owner
    )
    assert ap.code == "000001"
    assert calls["n"] >= 2


def test_service_layer_errors(db_session, owner, appointment_payload):
    ap = appointments_service.create_appointment(
        db_session, _create_in(appointment_payload, 9), actor=owner
    )
    with pytest.raises(ConflictError):
        appointments_service.create_appointment(
            db_session, _create_in(appointment_payload, 9), actor=owner
        )

    appointments_service.cancel_appointment(db_session, ap.id, actor=owner)
    with pytest.raises(NotFoundError):
        appointments_service.cancel_appointment(db_session, ap.id, actor=owner)
