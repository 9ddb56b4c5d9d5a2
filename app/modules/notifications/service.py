"""Notifications business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import NotificationTypeEnum
from app.modules.identity.schemas import Identity
from app.modules.notifications.models import Notification
from app.modules.notifications.repository import NotificationsRepository
from app.shared.exceptions import BusinessRuleException, NotFoundException, UnauthorizedException
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


class NotificationsService:
    """Admin notifications; also the booking core's notifier."""

    def __init__(self, repository: NotificationsRepository) -> None:
        self.repository = repository

    async def notify(
        self,
        booking_id: UUID,
        message: str,
        notification_type: NotificationTypeEnum = NotificationTypeEnum.PAYMENT,
    ) -> Notification:
        """Record an admin notification for a booking and commit it."""
        if not message.strip():
            raise BusinessRuleException("Notification message must not be empty")

        notification = await self.repository.create_notification(
            booking_id=booking_id,
            message=message.strip(),
            notification_type=notification_type,
        )
        await self.repository.commit()
        logger.info("Notification %s raised for booking %s", notification.id, booking_id)
        return notification

    async def list_notifications(
        self,
        actor: Identity,
        unread_only: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[Notification], int]:
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can view notifications")
        return await self.repository.list_notifications(unread_only, limit, offset)

    async def mark_read(self, notification_id: UUID, actor: Identity) -> Notification:
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can update notifications")

        notification = await self.repository.get_notification_by_id(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        if notification.is_read:
            return notification
        return await self.repository.mark_read(notification, actor.customer_ref, utc_now())


async def get_notifications_service(session: AsyncSession = Depends(get_db_session)) -> NotificationsService:
    """Dependency provider for notifications service."""
    return NotificationsService(NotificationsRepository(session))
