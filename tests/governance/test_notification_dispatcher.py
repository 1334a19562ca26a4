"""Tests for the notification dispatcher: pull-based listing and read state."""

import pytest
from uuid_extensions import uuid7

from src.governance.errors import Forbidden, NotFound, PendingApproval
from src.governance.notifications import NotificationDispatcher
from src.models.common import NotificationType
from src.repositories.notifications import NotificationRepository


async def _dispatch(dispatcher: NotificationDispatcher, user, message: str = "hello"):
    return await dispatcher.dispatch(
        user.principal_id, uuid7(), NotificationType.TASK_ASSIGNED, message
    )


class TestDispatch:
    @pytest.mark.anyio
    async def test_dispatch_is_unread(self, room) -> None:
        note = await _dispatch(room.dispatcher, room.alice, "New task assigned: X")
        assert note.user_id == room.alice.principal_id
        assert note.is_read is False
        assert note.type == NotificationType.TASK_ASSIGNED
        assert await room.dispatcher.unread_count(room.alice) == 1


class TestListForUser:
    @pytest.mark.anyio
    async def test_newest_first(self, room) -> None:
        for i in range(3):
            await _dispatch(room.dispatcher, room.alice, f"n{i}")
        notes = await room.dispatcher.list_for_user(room.alice)
        assert [n.message for n in notes] == ["n2", "n1", "n0"]

    @pytest.mark.anyio
    async def test_only_own_notifications(self, room) -> None:
        await _dispatch(room.dispatcher, room.alice)
        assert await room.dispatcher.list_for_user(room.bob) == []

    @pytest.mark.anyio
    async def test_limit_is_clamped(self, room, db_session) -> None:
        dispatcher = NotificationDispatcher(
            NotificationRepository(db_session), default_limit=2, max_limit=3
        )
        for i in range(5):
            await _dispatch(dispatcher, room.alice, f"n{i}")

        assert len(await dispatcher.list_for_user(room.alice)) == 2
        assert len(await dispatcher.list_for_user(room.alice, 50)) == 3
        assert len(await dispatcher.list_for_user(room.alice, 0)) == 1

    @pytest.mark.anyio
    async def test_requery_reflects_new_notifications(self, room) -> None:
        await _dispatch(room.dispatcher, room.alice, "first")
        assert len(await room.dispatcher.list_for_user(room.alice)) == 1
        await _dispatch(room.dispatcher, room.alice, "second")
        notes = await room.dispatcher.list_for_user(room.alice)
        assert [n.message for n in notes] == ["second", "first"]

    @pytest.mark.anyio
    async def test_unread_only(self, room) -> None:
        first = await _dispatch(room.dispatcher, room.alice, "first")
        await _dispatch(room.dispatcher, room.alice, "second")
        await room.dispatcher.mark_as_read(room.alice, first.notification_id)
        notes = await room.dispatcher.list_for_user(room.alice, unread_only=True)
        assert [n.message for n in notes] == ["second"]

    @pytest.mark.anyio
    async def test_pending_principal_blocked(self, room) -> None:
        with pytest.raises(PendingApproval):
            await room.dispatcher.list_for_user(room.pending)


class TestReadState:
    @pytest.mark.anyio
    async def test_mark_as_read_idempotent(self, room) -> None:
        note = await _dispatch(room.dispatcher, room.alice)
        first = await room.dispatcher.mark_as_read(room.alice, note.notification_id)
        second = await room.dispatcher.mark_as_read(room.alice, note.notification_id)
        assert first.is_read and second.is_read
        assert await room.dispatcher.unread_count(room.alice) == 0

    @pytest.mark.anyio
    async def test_cannot_mark_someone_elses(self, room) -> None:
        note = await _dispatch(room.dispatcher, room.alice)
        with pytest.raises(Forbidden):
            await room.dispatcher.mark_as_read(room.bob, note.notification_id)
        assert await room.dispatcher.unread_count(room.alice) == 1

    @pytest.mark.anyio
    async def test_unknown_notification(self, room) -> None:
        with pytest.raises(NotFound):
            await room.dispatcher.mark_as_read(room.alice, uuid7())

    @pytest.mark.anyio
    async def test_mark_all_as_read(self, room) -> None:
        for _ in range(3):
            await _dispatch(room.dispatcher, room.alice)
        await _dispatch(room.dispatcher, room.bob)

        assert await room.dispatcher.mark_all_as_read(room.alice) == 3
        assert await room.dispatcher.mark_all_as_read(room.alice) == 0
        assert await room.dispatcher.unread_count(room.alice) == 0
        assert await room.dispatcher.unread_count(room.bob) == 1
        notes = await room.dispatcher.list_for_user(room.alice)
        assert all(n.is_read for n in notes)
