"""Shared pytest fixtures for the Taskroom test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- client: AsyncClient with dependency overrides for DB-backed testing
- room: a seeded room with an admin, an approver, two users and a
  pending signup, built through the governance services
"""

from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from uuid_extensions import uuid7

from src.db.session import Base, get_async_session
import src.db.tables  # noqa: F401 - register ORM models on Base.metadata
from src.governance.lifecycle import LifecycleEngine
from src.governance.notifications import NotificationDispatcher
from src.governance.room_boundary import RoomBoundary
from src.models.common import Role
from src.models.principal import Principal
from src.models.room import Room
from src.repositories.notifications import NotificationRepository
from src.repositories.principals import PrincipalRepository
from src.repositories.tasks import TaskRepository


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed; it rolls back at teardown.
    The session runs inside its own SAVEPOINT, so application code calling
    session.commit() or session.begin_nested() stays within the outer
    transaction. This ensures full test isolation.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
async def client(db_session):
    """AsyncClient with get_async_session overridden to use the test session."""
    from src.api.main import app

    async def _override_session():
        yield db_session

    app.dependency_overrides[get_async_session] = _override_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeded rooms
# ---------------------------------------------------------------------------


@dataclass
class SeededRoom:
    room: Room
    admin: Principal
    approver: Principal
    alice: Principal
    bob: Principal
    pending: Principal
    boundary: RoomBoundary
    engine: LifecycleEngine
    dispatcher: NotificationDispatcher


async def seed_room(session, prefix: str) -> SeededRoom:
    """Admin creates a room; members join by code and get approved."""
    boundary = RoomBoundary(session)
    dispatcher = NotificationDispatcher(NotificationRepository(session))
    engine = LifecycleEngine(
        TaskRepository(session), PrincipalRepository(session), dispatcher
    )

    admin = await boundary.register(
        principal_id=uuid7(), username=f"{prefix}_admin",
        email=f"admin@{prefix}.test", role=Role.ADMIN,
    )
    room = await boundary.create_room(admin, f"{prefix} room")
    admin = admin.model_copy(update={"room_id": room.room_id})

    async def join(username: str) -> Principal:
        return await boundary.register(
            principal_id=uuid7(), username=f"{prefix}_{username}",
            email=f"{username}@{prefix}.test", role=Role.USER,
            room_code=room.current_code,
        )

    approver = await join("approver")
    await boundary.approve(admin, approver.principal_id)
    approver = await boundary.promote_role(approver.principal_id, Role.APPROVER, admin)

    alice = await join("alice")
    alice = await boundary.approve(admin, alice.principal_id)
    bob = await join("bob")
    bob = await boundary.approve(admin, bob.principal_id)
    pending = await join("pending")

    return SeededRoom(
        room=room, admin=admin, approver=approver, alice=alice, bob=bob,
        pending=pending, boundary=boundary, engine=engine, dispatcher=dispatcher,
    )


@pytest.fixture
async def room(db_session) -> SeededRoom:
    return await seed_room(db_session, "acme")


@pytest.fixture
async def other_room(db_session) -> SeededRoom:
    return await seed_room(db_session, "globex")
