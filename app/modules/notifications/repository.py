"""Notifications repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationTypeEnum
from app.modules.notifications.models import Notification


class NotificationsRepository:
    """DB operations for notifications domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_notification(
        self,
        booking_id: UUID | None,
        message: str,
        notification_type: NotificationTypeEnum,
    ) -> Notification:
        """Insert inside a savepoint so a failure cannot poison the outer transaction."""
        notification = Notification(booking_id=booking_id, message=message, type=notification_type)
        async with self.session.begin_nested():
            self.session.add(notification)
            await self.session.flush()
        return notification

    async def get_notification_by_id(self, notification_id: UUID) -> Notification | None:
        stmt = select(Notification).where(Notification.id == notification_id)
        return await self.session.scalar(stmt)

    async def list_notifications(
        self,
        unread_only: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[Notification], int]:
        base_stmt: Select[tuple[Notification]] = select(Notification)
        if unread_only:
            base_stmt = base_stmt.where(Notification.is_read.is_(False))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def mark_read(self, notification: Notification, read_by: str, read_at: datetime) -> Notification:
        notification.is_read = True
        notification.read_by = read_by
        notification.read_at = read_at
        await self.session.flush()
        return notification

    async def commit(self) -> None:
        await self.session.commit()
