"""Notification repository."""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import NotificationRow
from src.models.common import utc_now


class NotificationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, notification_id: UUID, user_id: UUID, type: str,
                     message: str, task_id: UUID | None = None) -> NotificationRow:
        row = NotificationRow(
            notification_id=notification_id, user_id=user_id, task_id=task_id,
            type=type, message=message, is_read=False, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, notification_id: UUID) -> NotificationRow | None:
        return await self._session.get(
            NotificationRow, notification_id, populate_existing=True
        )

    async def list_for_user(self, user_id: UUID, *, limit: int,
                            unread_only: bool = False) -> list[NotificationRow]:
        """Newest first, bounded by ``limit``."""
        stmt = select(NotificationRow).where(NotificationRow.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationRow.is_read.is_(False))
        stmt = stmt.order_by(
            NotificationRow.created_at.desc(),
            NotificationRow.notification_id.desc(),
        ).limit(limit).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_unread(self, user_id: UUID) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(NotificationRow).where(
                NotificationRow.user_id == user_id,
                NotificationRow.is_read.is_(False),
            )
        )
        return int(result.scalar_one())

    async def mark_read(self, notification_id: UUID) -> NotificationRow | None:
        row = await self.get(notification_id)
        if row is not None and not row.is_read:
            row.is_read = True
            await self._session.flush()
        return row

    async def mark_all_read(self, user_id: UUID) -> int:
        """Returns how many notifications flipped from unread to read."""
        result = await self._session.execute(
            update(NotificationRow)
            .where(
                NotificationRow.user_id == user_id,
                NotificationRow.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
