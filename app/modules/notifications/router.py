"""Notifications API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.identity.schemas import Identity
from app.modules.identity.service import require_admin
from app.modules.notifications.schemas import NotificationRead
from app.modules.notifications.service import NotificationsService, get_notifications_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Page[NotificationRead])
async def list_notifications(
    unread_only: bool = Query(default=False),
    pagination=Depends(get_pagination_params),
    service: NotificationsService = Depends(get_notifications_service),
    identity: Identity = Depends(require_admin),
) -> Page[NotificationRead]:
    """List admin notifications, newest first."""
    items, total = await service.list_notifications(
        identity,
        unread_only,
        pagination.limit,
        pagination.offset,
    )
    serialized = [NotificationRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: UUID,
    service: NotificationsService = Depends(get_notifications_service),
    identity: Identity = Depends(require_admin),
) -> NotificationRead:
    """Mark notification as read."""
    notification = await service.mark_read(notification_id, identity)
    return NotificationRead.model_validate(notification)
