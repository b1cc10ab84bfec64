from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from salonbook.db import get_db
from salonbook.deps import get_current_user, require_roles
from salonbook.models.user import Role, User
from salonbook.schemas.professionals import ProfessionalOut, ProfessionalUpsertIn
from salonbook.services.clients import ensure_tenant_access
from salonbook.services.professionals import (
    list_professionals,
    remove_professional,
    to_out,
    upsert_professional,
)

router = APIRouter(prefix="/clients/{client_id}/professionals", tags=["professionals"])

# quem pode mexer no quadro de profissionais
_MANAGERS = (Role.OWNER, Role.ADMIN, Role.STAFF)


@router.get("", response_model=list[ProfessionalOut])
def list_(
    client_id: int,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(get_current_user),  # noqa: B008
):
    ensure_tenant_access(current_user, client_id)
    return [to_out(p) for p in list_professionals(db, client_id)]


@router.post("", response_model=ProfessionalOut, status_code=status.HTTP_200_OK)
def upsert(
    client_id: int,
    payload: ProfessionalUpsertIn,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(require_roles(*_MANAGERS)),  # noqa: B008
):
    ensure_tenant_access(current_user, client_id)
    prof = upsert_professional(db, client_id, payload, actor=current_user, request=request)
    return to_out(prof)


@router.delete("/{professional_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(
    client_id: int,
    professional_id: int,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    current_user: User = Depends(require_roles(*_MANAGERS)),  # noqa: B008
):
    ensure_tenant_access(current_user, client_id)
    remove_professional(db, client_id, professional_id, actor=current_user, request=request)
