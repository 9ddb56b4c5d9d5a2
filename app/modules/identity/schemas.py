"""Identity schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import RoleEnum


class Identity(BaseModel):
    """Authenticated caller as asserted by the identity provider.

    Services receive this value explicitly; nothing in the booking core reads a
    "current user" from module state.
    """

    model_config = ConfigDict(frozen=True)

    customer_ref: str = Field(min_length=1, max_length=128)
    role: RoleEnum = RoleEnum.CUSTOMER
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN


class IdentityRead(BaseModel):
    """Identity response schema."""

    customer_ref: str
    role: RoleEnum
    email: str | None
