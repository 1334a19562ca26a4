"""Seed script — load a demo room into the Taskroom database.

Creates:
1. An admin (auto-approved) and the "Demo Room" they administer
2. One approver and two users who joined with the room code
3. Three sample tasks, one already in progress

All writes go through the governance services, so the seed obeys the same
rules (and emits the same notifications) as real traffic.

Idempotent: safe to run multiple times — skips if the demo admin already exists.

Usage:
    python -m scripts.seed          # against DATABASE_URL from .env
    pytest tests/scripts/test_seed.py  # against aiosqlite in-memory
"""

import asyncio
import sys
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.governance.lifecycle import LifecycleEngine
from src.governance.notifications import NotificationDispatcher
from src.governance.room_boundary import RoomBoundary
from src.models.common import Role, TaskPriority, TaskStatus, utc_now
from src.models.principal import Principal
from src.repositories.notifications import NotificationRepository
from src.repositories.principals import PrincipalRepository
from src.repositories.tasks import TaskRepository

DEMO_ROOM_NAME = "Demo Room"
DEMO_ADMIN_ID = UUID("01900000-0000-7000-8000-000000000001")
DEMO_ADMIN_EMAIL = "admin@taskroom.demo"

# (principal_id, username, email, final role)
DEMO_MEMBERS: list[tuple[UUID, str, str, Role]] = [
    (UUID("01900000-0000-7000-8000-000000000002"), "dana", "dana@taskroom.demo", Role.APPROVER),
    (UUID("01900000-0000-7000-8000-000000000003"), "sam", "sam@taskroom.demo", Role.USER),
    (UUID("01900000-0000-7000-8000-000000000004"), "lee", "lee@taskroom.demo", Role.USER),
]

# (title, assignee username, priority, days until due)
DEMO_TASKS: list[tuple[str, str, TaskPriority, int]] = [
    ("Write report", "sam", TaskPriority.MEDIUM, 1),
    ("Review vendor contracts", "lee", TaskPriority.HIGH, 3),
    ("Prepare onboarding checklist", "sam", TaskPriority.LOW, 7),
]


async def _principal(session: AsyncSession, principal_id: UUID) -> Principal:
    row = await PrincipalRepository(session).get(principal_id)
    return Principal.model_validate(row)


async def seed_room(session: AsyncSession) -> tuple[Principal, UUID]:
    """Register the demo admin and create their room."""
    boundary = RoomBoundary(session)
    admin = await boundary.register(
        principal_id=DEMO_ADMIN_ID, username="admin",
        email=DEMO_ADMIN_EMAIL, role=Role.ADMIN,
    )
    room = await boundary.create_room(admin, DEMO_ROOM_NAME)
    return await _principal(session, DEMO_ADMIN_ID), room.room_id


async def seed_members(session: AsyncSession, admin: Principal) -> dict[str, Principal]:
    """Join every demo member by room code, approve them, apply promotions."""
    boundary = RoomBoundary(session)
    room = await boundary.get_room(admin, admin.room_id)
    members: dict[str, Principal] = {}
    for principal_id, username, email, role in DEMO_MEMBERS:
        await boundary.register(
            principal_id=principal_id, username=username, email=email,
            role=Role.USER, room_code=room.current_code,
        )
        member = await boundary.approve(admin, principal_id)
        if role != Role.USER:
            member = await boundary.promote_role(principal_id, role, admin)
        members[username] = member
    return members


async def seed_tasks(
    session: AsyncSession,
    admin: Principal,
    members: dict[str, Principal],
) -> list[UUID]:
    engine = LifecycleEngine(
        tasks=TaskRepository(session),
        principals=PrincipalRepository(session),
        dispatcher=NotificationDispatcher(NotificationRepository(session)),
    )
    now = utc_now()
    task_ids: list[UUID] = []
    for title, username, priority, days in DEMO_TASKS:
        task = await engine.create_task(
            admin,
            room_id=admin.room_id,
            title=title,
            assigned_to=members[username].principal_id,
            priority=priority,
            due_date=now + timedelta(days=days),
        )
        task_ids.append(task.task_id)

    # Sam has started on the first task
    await engine.transition(members["sam"], task_ids[0], TaskStatus.IN_PROGRESS)
    return task_ids


async def seed_demo(session: AsyncSession) -> dict:
    """Seed the full demo room. Returns a summary dict."""
    existing = await PrincipalRepository(session).get_by_email(DEMO_ADMIN_EMAIL)
    if existing is not None:
        return {"created": False, "room_id": existing.room_id}

    admin, room_id = await seed_room(session)
    members = await seed_members(session, admin)
    task_ids = await seed_tasks(session, admin, members)
    return {
        "created": True,
        "room_id": room_id,
        "member_count": len(members) + 1,
        "task_count": len(task_ids),
    }


async def _run_seed() -> None:
    """Run the full seed against the real database (idempotent)."""
    from src.db.session import async_session_factory

    async with async_session_factory() as session:
        result = await seed_demo(session)

        if not result["created"]:
            print(f"Demo data already seeded ({DEMO_ADMIN_EMAIL} exists). Skipping.")
            print(f"  Room: {result['room_id']}")
            return

        await session.commit()

        print("Seed complete.")
        print(f"  Room:     {result['room_id']}")
        print(f"  Members:  {result['member_count']}")
        print(f"  Tasks:    {result['task_count']}")


if __name__ == "__main__":
    asyncio.run(_run_seed())


def __getattr__(name: str):  # type: ignore[misc]
    """Allow `python -m scripts.seed` to work."""
    if name == "__main__":
        asyncio.run(_run_seed())
        sys.exit(0)
    raise AttributeError(name)
