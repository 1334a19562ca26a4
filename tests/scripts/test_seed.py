"""Tests for the seed script — verifies the demo room loads and re-runs cleanly."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scripts.seed import (
    DEMO_ADMIN_EMAIL,
    DEMO_MEMBERS,
    DEMO_TASKS,
    seed_demo,
)
from src.db.tables import RoomRow
from src.models.common import AccountStatus, Role, TaskStatus
from src.repositories.notifications import NotificationRepository
from src.repositories.principals import PrincipalRepository
from src.repositories.rooms import RoomRepository
from src.repositories.tasks import TaskRepository


class TestSeedDemo:
    """seed_demo creates a room, its members, and sample tasks."""

    @pytest.mark.anyio
    async def test_creates_room(self, db_session: AsyncSession) -> None:
        result = await seed_demo(db_session)
        assert result["created"] is True
        room = await RoomRepository(db_session).get(result["room_id"])
        assert room is not None
        assert room.name == "Demo Room"

    @pytest.mark.anyio
    async def test_members_approved_with_roles(self, db_session: AsyncSession) -> None:
        result = await seed_demo(db_session)
        members = await PrincipalRepository(db_session).list_by_room(result["room_id"])
        assert len(members) == result["member_count"] == len(DEMO_MEMBERS) + 1
        assert all(m.account_status == AccountStatus.APPROVED.value for m in members)

        roles = {m.email: m.role for m in members}
        assert roles[DEMO_ADMIN_EMAIL] == Role.ADMIN.value
        for _, _, email, role in DEMO_MEMBERS:
            assert roles[email] == role.value

    @pytest.mark.anyio
    async def test_tasks_and_notifications(self, db_session: AsyncSession) -> None:
        result = await seed_demo(db_session)
        tasks = await TaskRepository(db_session).list_by_room(result["room_id"])
        assert len(tasks) == result["task_count"] == len(DEMO_TASKS)

        by_title = {t.title: t for t in tasks}
        assert by_title["Write report"].status == TaskStatus.IN_PROGRESS.value
        assert by_title["Review vendor contracts"].status == TaskStatus.ASSIGNED.value

        # Every assignee was notified once per task
        for task in tasks:
            notes = await NotificationRepository(db_session).list_for_user(
                task.assigned_to, limit=10
            )
            assert any(n.task_id == task.task_id for n in notes)


class TestSeedIdempotency:
    """Running the seed twice leaves a single demo room."""

    @pytest.mark.anyio
    async def test_second_run_skips(self, db_session: AsyncSession) -> None:
        first = await seed_demo(db_session)
        second = await seed_demo(db_session)
        assert second["created"] is False
        assert second["room_id"] == first["room_id"]
        rooms = await db_session.execute(select(func.count()).select_from(RoomRow))
        assert rooms.scalar_one() == 1
