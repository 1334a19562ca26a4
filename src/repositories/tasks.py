"""Task repository — room-scoped persistence with conditional writes.

Status and field changes are applied as a single conditional UPDATE
(``WHERE status = :expected AND is_deleted = false``). A zero row count
means another writer got there first; the caller decides what to do.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import TaskRow
from src.models.common import utc_now


class TaskRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, task_id: UUID, room_id: UUID, title: str,
                     assigned_to: UUID, created_by: UUID, priority: str,
                     status: str, due_date: datetime,
                     description: str | None = None) -> TaskRow:
        now = utc_now()
        row = TaskRow(
            task_id=task_id, room_id=room_id, title=title,
            description=description, assigned_to=assigned_to,
            created_by=created_by, priority=priority, status=status,
            due_date=due_date, created_at=now, updated_at=now,
            is_deleted=False,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, task_id: UUID) -> TaskRow | None:
        return await self._session.get(TaskRow, task_id, populate_existing=True)

    async def list_by_room(
        self,
        room_id: UUID,
        *,
        search: str | None = None,
        status: str | None = None,
        assigned_to: UUID | None = None,
        include_deleted: bool = False,
    ) -> list[TaskRow]:
        """Room tasks, newest first. All filters combine with AND."""
        stmt = select(TaskRow).where(TaskRow.room_id == room_id)
        if not include_deleted:
            stmt = stmt.where(TaskRow.is_deleted.is_(False))
        if status:
            stmt = stmt.where(TaskRow.status == status)
        if assigned_to is not None:
            stmt = stmt.where(TaskRow.assigned_to == assigned_to)
        if search:
            needle = search.strip().lower()
            stmt = stmt.where(
                or_(
                    func.lower(TaskRow.title).contains(needle, autoescape=True),
                    func.lower(func.coalesce(TaskRow.description, "")).contains(
                        needle, autoescape=True
                    ),
                )
            )
        stmt = stmt.order_by(
            TaskRow.created_at.desc(), TaskRow.task_id.desc()
        ).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        task_id: UUID,
        *,
        expected_status: str,
        new_status: str,
        expected_assigned_to: UUID | None = None,
        **values: Any,
    ) -> TaskRow | None:
        """Move ``expected_status -> new_status`` atomically.

        Returns the refreshed row, or None if the row no longer has
        ``expected_status`` (or ``expected_assigned_to``, when given) or was
        deleted at write time.
        """
        return await self.update_fields(
            task_id,
            expected_status=expected_status,
            expected_assigned_to=expected_assigned_to,
            status=new_status,
            **values,
        )

    async def update_fields(
        self,
        task_id: UUID,
        *,
        expected_status: str,
        expected_assigned_to: UUID | None = None,
        **values: Any,
    ) -> TaskRow | None:
        """Conditionally update columns while the task still has ``expected_status``.

        ``expected_assigned_to`` additionally pins the assignee the caller
        read, so a reassignment in between makes the write miss.
        """
        values.setdefault("updated_at", utc_now())
        conditions = [
            TaskRow.task_id == task_id,
            TaskRow.status == expected_status,
            TaskRow.is_deleted.is_(False),
        ]
        if expected_assigned_to is not None:
            conditions.append(TaskRow.assigned_to == expected_assigned_to)
        result = await self._session.execute(
            update(TaskRow)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.get(task_id)
