"""Notifications schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import NotificationTypeEnum


class NotificationRead(BaseModel):
    """Notification response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID | None
    type: NotificationTypeEnum
    message: str
    is_read: bool
    read_at: datetime | None
    read_by: str | None
    created_at: datetime
