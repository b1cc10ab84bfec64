from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salonbook.core.errors import ConflictError, ForbiddenError, NotFoundError
from salonbook.models.client import Client
from salonbook.models.user import User
from salonbook.services.codes import next_client_code


def create_client(
    db: Session,
    *,
    rif: str,
    name: str,
    denomination: str = "",
    phone: str = "",
    email: str = "",
    address: str = "",
    communication_channels: list[str] | None = None,
) -> Client:
    """Cria o tenant com o próximo código sequencial. Não faz commit."""
    client = Client(
        code=next_client_code(db),
        rif=rif,
        name=name,
        denomination=denomination,
        phone=phone,
        email=email,
        address=address,
        communication_channels=list(communication_channels or []),
    )
    db.add(client)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        # rif duplicado ou corrida no código sequencial
        raise ConflictError(f"Cliente com RIF {rif} ou código já cadastrado") from e
    return client


def get_active_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None or not client.active:
        raise NotFoundError("Cliente não encontrado")
    return client


def tenant_scope(actor: User) -> int | None:
    """
    None = enxerga todos os tenants (backoffice); senão, o client_id do usuário.
    Usuário comum sem tenant não tem escopo nenhum.
    """
    if actor.is_backoffice:
        return None
    if actor.client_id is None:
        raise ForbiddenError("Usuário sem salão vinculado")
    return actor.client_id


def ensure_tenant_access(actor: User, client_id: int) -> None:
    scope = tenant_scope(actor)
    if scope is not None and scope != client_id:
        raise ForbiddenError("Sem acesso a este salão")
