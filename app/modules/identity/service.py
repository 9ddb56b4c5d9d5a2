"""Identity resolution from provider-issued bearer tokens."""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.core.enums import RoleEnum
from app.core.security import bearer_scheme, decode_token
from app.modules.identity.schemas import Identity
from app.shared.exceptions import UnauthenticatedException, UnauthorizedException

settings = get_settings()


def identity_from_claims(claims: dict) -> Identity:
    """Map JWT claims onto an explicit identity value."""
    subject = claims.get("sub")
    if not subject:
        raise UnauthenticatedException("Token subject is missing")

    role = RoleEnum.ADMIN if claims.get("role") == settings.identity_admin_role else RoleEnum.CUSTOMER
    return Identity(customer_ref=str(subject), role=role, email=claims.get("email"))


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """Resolve the logged-in identity or reject the request."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedException("Please log in to continue")
    return identity_from_claims(decode_token(credentials.credentials))


async def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity | None:
    """Resolve identity when a token is present; anonymous callers get None."""
    if credentials is None or not credentials.credentials:
        return None
    return identity_from_claims(decode_token(credentials.credentials))


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Dependency that only lets administrators through."""
    if not identity.is_admin:
        raise UnauthorizedException("Operation not permitted for your role")
    return identity
