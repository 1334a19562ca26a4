"""Principal (member) repository."""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import PrincipalRow
from src.models.common import utc_now


class PrincipalRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, principal_id: UUID, username: str, email: str,
                     role: str, account_status: str,
                     room_id: UUID | None = None) -> PrincipalRow:
        now = utc_now()
        row = PrincipalRow(
            principal_id=principal_id, username=username, email=email,
            room_id=room_id, role=role, account_status=account_status,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, principal_id: UUID) -> PrincipalRow | None:
        return await self._session.get(PrincipalRow, principal_id, populate_existing=True)

    async def get_by_email(self, email: str) -> PrincipalRow | None:
        result = await self._session.execute(
            select(PrincipalRow).where(PrincipalRow.email == email)
        )
        return result.scalar_one_or_none()

    async def list_by_room(self, room_id: UUID,
                           account_status: str | None = None) -> list[PrincipalRow]:
        stmt = select(PrincipalRow).where(PrincipalRow.room_id == room_id)
        if account_status is not None:
            stmt = stmt.where(PrincipalRow.account_status == account_status)
        result = await self._session.execute(stmt.order_by(PrincipalRow.created_at))
        return list(result.scalars().all())

    async def set_room(self, principal_id: UUID, room_id: UUID) -> PrincipalRow | None:
        row = await self.get(principal_id)
        if row is not None:
            row.room_id = room_id
            row.updated_at = utc_now()
            await self._session.flush()
        return row

    async def update_role(self, principal_id: UUID, role: str,
                          actor: UUID) -> PrincipalRow | None:
        row = await self.get(principal_id)
        if row is not None:
            now = utc_now()
            row.role = role
            row.promoted_by = actor
            row.promoted_at = now
            row.updated_at = now
            await self._session.flush()
        return row

    async def update_status(self, principal_id: UUID,
                            account_status: str) -> PrincipalRow | None:
        row = await self.get(principal_id)
        if row is not None:
            row.account_status = account_status
            row.updated_at = utc_now()
            await self._session.flush()
        return row

    async def delete_pending(self, principal_id: UUID) -> bool:
        """Remove a still-pending signup. Approved history is never deleted."""
        result = await self._session.execute(
            delete(PrincipalRow).where(
                PrincipalRow.principal_id == principal_id,
                PrincipalRow.account_status == "pending",
            )
        )
        return result.rowcount == 1
