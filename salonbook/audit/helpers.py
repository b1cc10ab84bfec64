from __future__ import annotations

from datetime import UTC, datetime

from fastapi import Request
from sqlalchemy.orm import Session

from salonbook.models.audit_log import AuditLog


def get_client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    # Respeita proxy → 1º IP do X-Forwarded-For
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return request.client.host if request.client else None


def record_audit(
    db: Session,
    *,
    request: Request | None,
    user_id: int | None,
    client_id: int | None,
    action: str,
    entity: str,
    entity_id: int | None,
) -> AuditLog:
    """Inclui o log na MESMA transação da operação; o commit é de quem chama."""
    log = AuditLog(
        user_id=user_id,
        client_id=client_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        timestamp_utc=datetime.now(UTC),
        ip=get_client_ip(request),
    )
    db.add(log)
    return log
