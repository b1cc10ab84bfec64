from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta

# Convenção única: limites de dia em UTC.


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    Garante que dt é timezone-aware em UTC.
    - Se já vier aware: converte para UTC.
    - Se vier naive: ERRO (evita gravar errado).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Datetime naive recebido. Sempre use datetimes timezone-aware."
        )
    return dt.astimezone(UTC)


def to_utc(dt: datetime) -> datetime:
    """Naive é interpretado como UTC; aware é convertido."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def day_bounds_utc(d: date) -> tuple[datetime, datetime]:
    start = datetime.combine(d, time.min).replace(tzinfo=UTC)
    return start, start + timedelta(days=1)


def at_minutes(d: date, minutes: int) -> datetime:
    start, _ = day_bounds_utc(d)
    return start + timedelta(minutes=minutes)


def iso_utc(dt: datetime) -> str:
    """
    Serializa em ISO 8601 sempre em UTC com sufixo 'Z'.
    """
    return ensure_aware_utc(dt).isoformat().replace("+00:00", "Z")
