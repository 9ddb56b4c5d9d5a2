"""Bearer-token helpers for identities issued by the external identity provider."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from app.core.config import get_settings
from app.shared.exceptions import UnauthenticatedException

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(subject: str, expires_minutes: int = 60, **claims: Any) -> str:
    """Sign a provider-compatible access token (local tooling and tests)."""
    payload: dict[str, Any] = {
        "sub": subject,
        "exp": datetime.now(UTC) + timedelta(minutes=expires_minutes),
    }
    payload.update(claims)
    return jwt.encode(
        payload,
        settings.identity_jwt_secret,
        algorithm=settings.identity_jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a provider-issued JWT."""
    try:
        return jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise UnauthenticatedException("Invalid token") from exc
