"""Identity API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.modules.identity.schemas import Identity, IdentityRead
from app.modules.identity.service import get_current_identity

router = APIRouter(prefix="/identity", tags=["identity"])


@router.get("/me", response_model=IdentityRead)
async def read_me(identity: Identity = Depends(get_current_identity)) -> IdentityRead:
    """Return identity resolved from the bearer token."""
    return IdentityRead(customer_ref=identity.customer_ref, role=identity.role, email=identity.email)
