from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from salonbook.core.settings import settings

# Emissão de tokens (login/refresh) fica no serviço de identidade; aqui só lemos.
# create_access_token replica o payload para scripts e testes.


def _now() -> datetime:
    return datetime.now(UTC)


def _signing_key() -> str:
    return settings.JWT_SECRET or settings.SECRET_KEY


def create_token(sub: str, type_: str, expires_delta: timedelta, **claims: Any) -> str:
    now = _now()
    payload: dict[str, Any] = {
        "sub": sub,  # user id (string)
        "type": type_,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        **claims,
    }
    return jwt.encode(payload, _signing_key(), algorithm=settings.JWT_ALG)


def create_access_token(sub: str, client_id: int | None = None) -> str:
    return create_token(
        sub,
        "access",
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        client=client_id,
    )


def decode_token(token: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, _signing_key(), algorithms=[settings.JWT_ALG])
    except JWTError as e:
        raise ValueError("Token inválido.") from e
    if payload.get("type") != expected_type:
        raise ValueError("Tipo de token inválido.")
    return payload
