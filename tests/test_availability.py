from datetime import UTC, date, datetime, time, timedelta
from types import SimpleNamespace

from fastapi import status

from conftest import auth_headers
from salonbook.services.availability import compute_available_slots, normalize_slot_count
from salonbook.utils.slots import time_to_minutes

MONDAY = date(2026, 10, 19)
# "agora" bem antes da segunda de referência
EARLIER = datetime(2026, 10, 1, 8, 0, tzinfo=UTC)


def _professional(*entries, pid=1):
    schedule = [SimpleNamespace(weekday=d, starts=s, ends=e) for d, s, e in entries]
    return SimpleNamespace(id=pid, schedule=schedule)


def _booking(day, start, end, bid=100, professional_id=1):
    h0, m0 = map(int, start.split(":"))
    h1, m1 = map(int, end.split(":"))
    return SimpleNamespace(
        id=bid,
        professional_id=professional_id,
        starts_at=datetime.combine(day, time(h0, m0), tzinfo=UTC),
        ends_at=datetime.combine(day, time(h1, m1), tzinfo=UTC),
    )


MORNING = _professional(("monday", "09:00", "12:00"))


def test_existing_booking_blocks_overlapping_starts():
    """Booking 09:30-10:00 with a 2-slot service."""
    slots = compute_available_slots(
        MORNING, MONDAY, 2, [_booking(MONDAY, "09:30", "10:00")], EARLIER
    )
    assert "09:00" in slots
    assert "09:15" not in slots
    assert "09:30" not in slots
    assert "09:45" not in slots
    assert slots[slots.index("10:00"):] == [
        "10:00", "10:15", "10:30", "10:45", "11:00", "11:15", "11:30"
    ]
    assert "11:45" not in slots


def test_day_without_schedule_is_empty():
    tuesday = MONDAY + timedelta(days=1)
    assert compute_available_slots(MORNING, tuesday, 1, [], EARLIER) == []


def test_missing_professional_is_empty():
    assert compute_available_slots(None, MONDAY, 1, [], EARLIER) == []


def test_duration_past_window_end_is_excluded():
    slots = compute_available_slots(MORNING, MONDAY, 4, [], EARLIER)
    # 11:00 + 60 min = 12:00 ainda cabe; 11:15 estoura a janela
    assert slots[-1] == "11:00"
    assert "11:15" not in slots


def test_every_slot_fits_inside_a_window():
    prof = _professional(("lunes", "09:00", "12:00"), (1, "14:00", "16:30"))
    slot_count = 3
    for start in compute_available_slots(prof, MONDAY, slot_count, [], EARLIER):
        begin = time_to_minutes(start)
        end = begin + slot_count * 15
        assert (540 <= begin and end <= 720) or (840 <= begin and end <= 990)


def test_split_shift_keeps_lunch_closed():
    prof = _professional(("monday", "09:00", "12:00"), ("monday", "14:00", "18:00"))
    slots = compute_available_slots(prof, MONDAY, 1, [], EARLIER)
    assert "11:45" in slots
    assert "12:00" not in slots
    assert "13:45" not in slots
    assert "14:00" in slots


def test_invalid_schedule_entries_are_skipped():
    prof = _professional(
        ("monday", "xx:yy", "12:00"),
        ("monday", "12:00", "10:00"),
        ("monday", "15:00", "16:00"),
    )
    slots = compute_available_slots(prof, MONDAY, 1, [], EARLIER)
    assert slots == ["15:00", "15:15", "15:30", "15:45"]


def test_invalid_slot_count_counts_as_one():
    assert normalize_slot_count(0) == 1
    assert normalize_slot_count(-3) == 1
    assert normalize_slot_count(None) == 1
    assert compute_available_slots(MORNING, MONDAY, 0, [], EARLIER)[-1] == "11:45"


def test_today_drops_starts_up_to_now():
    now = datetime.combine(MONDAY, time(10, 0), tzinfo=UTC)
    slots = compute_available_slots(MORNING, MONDAY, 1, [], now)
    assert "10:00" not in slots
    assert slots[0] == "10:15"


def test_past_day_returns_nothing_for_new_booking():
    later = datetime.combine(MONDAY + timedelta(days=1), time(8, 0), tzinfo=UTC)
    assert compute_available_slots(MORNING, MONDAY, 1, [], later) == []


def test_editing_keeps_original_start_even_in_the_past():
    own = _booking(MONDAY, "09:00", "09:30", bid=7)
    other = _booking(MONDAY, "09:30", "10:00", bid=8)
    now = datetime.combine(MONDAY, time(11, 0), tzinfo=UTC)

    slots = compute_available_slots(MORNING, MONDAY, 2, [own, other], now, editing=own)

    # o próprio agendamento não bloqueia e o filtro de passado não se aplica
    assert "09:00" in slots
    assert "09:30" not in slots
    assert "10:00" in slots


def test_editing_longer_duration_drops_original_start_when_neighbour_blocks():
    own = _booking(MONDAY, "09:00", "09:30", bid=7)
    neighbour = _booking(MONDAY, "09:30", "10:00", bid=8)
    slots = compute_available_slots(MORNING, MONDAY, 4, [own, neighbour], EARLIER, editing=own)
    assert "09:00" not in slots
    assert slots[0] == "10:00"


def test_editing_longer_duration_drops_original_start_past_window_end():
    own = _booking(MONDAY, "11:30", "12:00", bid=7)
    slots = compute_available_slots(MORNING, MONDAY, 8, [own], EARLIER, editing=own)
    assert "11:30" not in slots
    assert slots[-1] == "10:00"


def test_availability_endpoint(client, db_session, professional, services, owner, monday):
    _, tintura = services
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat(), "service_id": tintura.id},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["slot_minutes"] == 15
    assert data["slot_count"] == 3
    assert data["slots"][0] == "09:00"
    assert data["slots"][-1] == "11:15"


def test_availability_endpoint_unknown_service_is_400(client, professional, owner, monday):
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat(), "service_id": 9999},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_availability_endpoint_requires_auth(client, professional, monday):
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat()},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_availability_endpoint_service_wins_over_slots(client, professional, services, owner, monday):
    corte, _ = services
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat(), "service_id": corte.id, "slots": 6},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["slot_count"] == 2
    assert data["slots"][-1] == "11:30"


def test_availability_endpoint_plain_slots(client, professional, owner, monday):
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat(), "slots": 6},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["slot_count"] == 6
    assert response.json()["slots"][-1] == "10:30"


def test_availability_endpoint_other_tenant_is_forbidden(client, professional, other_owner, monday):
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat()},
        headers=auth_headers(other_owner),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_availability_endpoint_backoffice_sees_any_tenant(client, professional, admin, monday):
    response = client.get(
        f"/api/v1/professionals/{professional.id}/availability",
        params={"date": monday.isoformat()},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()["slots"]) == 12
