"""Room and code rotation history repositories."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import CodeRotationRow, RoomRow
from src.models.common import utc_now


class RoomRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, room_id: UUID, name: str, current_code: str,
                     created_by: UUID) -> RoomRow:
        row = RoomRow(
            room_id=room_id, name=name, current_code=current_code,
            created_by=created_by, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, room_id: UUID) -> RoomRow | None:
        return await self._session.get(RoomRow, room_id, populate_existing=True)

    async def get_by_code(self, code: str) -> RoomRow | None:
        result = await self._session.execute(
            select(RoomRow).where(RoomRow.current_code == code)
        )
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        result = await self._session.execute(
            select(RoomRow.room_id).where(RoomRow.current_code == code)
        )
        return result.first() is not None

    async def update_code(self, room_id: UUID, new_code: str) -> RoomRow | None:
        row = await self.get(room_id)
        if row is not None:
            row.current_code = new_code
            await self._session.flush()
        return row


class CodeRotationRepository:
    """Append-only: no update or delete."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, *, rotation_id: UUID, room_id: UUID, old_code: str,
                     new_code: str, rotated_by: UUID) -> CodeRotationRow:
        row = CodeRotationRow(
            rotation_id=rotation_id, room_id=room_id, old_code=old_code,
            new_code=new_code, rotated_by=rotated_by, rotated_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_by_room(self, room_id: UUID) -> list[CodeRotationRow]:
        """Newest first."""
        result = await self._session.execute(
            select(CodeRotationRow)
            .where(CodeRotationRow.room_id == room_id)
            .order_by(CodeRotationRow.rotated_at.desc(), CodeRotationRow.rotation_id.desc())
        )
        return list(result.scalars().all())
