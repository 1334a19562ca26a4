"""Tests for Taskroom core Pydantic models.

Covers: immutability, validation, enums, the task and account state
machines, and the derived deadline fields.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from uuid_extensions import uuid7

from src.models.common import (
    AccountStatus,
    Role,
    TaskPriority,
    TaskStatus,
    ensure_utc,
    utc_now,
)
from src.models.notification import Notification
from src.models.principal import (
    ACCOUNT_STATUS_ACTIONS,
    VALID_ROLE_CHANGES,
    Principal,
)
from src.models.room import CodeRotation, Room
from src.models.task import (
    VALID_TASK_TRANSITIONS,
    Task,
    days_until_due,
    is_overdue,
    is_valid_transition,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _make_task(**overrides: object) -> Task:
    defaults: dict[str, object] = {
        "room_id": uuid7(),
        "title": "Write report",
        "assigned_to": uuid7(),
        "created_by": uuid7(),
        "due_date": NOW + timedelta(days=1),
    }
    defaults.update(overrides)
    return Task(**defaults)  # type: ignore[arg-type]


def _make_principal(**overrides: object) -> Principal:
    defaults: dict[str, object] = {
        "principal_id": uuid7(),
        "username": "alice",
        "email": "alice@example.com",
    }
    defaults.update(overrides)
    return Principal(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------


class TestEnsureUtc:
    def test_naive_gets_utc(self) -> None:
        value = ensure_utc(datetime(2026, 1, 1, 9, 30))
        assert value.tzinfo == timezone.utc
        assert value.hour == 9

    def test_aware_is_converted(self) -> None:
        plus_three = timezone(timedelta(hours=3))
        value = ensure_utc(datetime(2026, 1, 1, 12, 0, tzinfo=plus_three))
        assert value.hour == 9
        assert value.tzinfo == timezone.utc


class TestEnums:
    def test_role_values(self) -> None:
        assert {r.value for r in Role} == {"user", "approver", "admin"}

    def test_account_status_values(self) -> None:
        assert {s.value for s in AccountStatus} == {
            "pending", "approved", "rejected", "suspended",
        }

    def test_task_priority_values(self) -> None:
        assert [p.value for p in TaskPriority] == ["low", "medium", "high", "urgent"]


# ---------------------------------------------------------------------------
# Task state machine
# ---------------------------------------------------------------------------


class TestTaskTransitions:
    def test_every_status_has_an_entry(self) -> None:
        assert set(VALID_TASK_TRANSITIONS) == set(TaskStatus)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS),
            (TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED),
            (TaskStatus.SUBMITTED, TaskStatus.APPROVED),
            (TaskStatus.SUBMITTED, TaskStatus.REJECTED),
            (TaskStatus.REJECTED, TaskStatus.IN_PROGRESS),
        ],
    )
    def test_valid_edges(self, current: TaskStatus, target: TaskStatus) -> None:
        assert is_valid_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.ASSIGNED, TaskStatus.SUBMITTED),
            (TaskStatus.ASSIGNED, TaskStatus.APPROVED),
            (TaskStatus.IN_PROGRESS, TaskStatus.APPROVED),
            (TaskStatus.SUBMITTED, TaskStatus.IN_PROGRESS),
            (TaskStatus.REJECTED, TaskStatus.SUBMITTED),
            (TaskStatus.SUBMITTED, TaskStatus.SUBMITTED),
        ],
    )
    def test_invalid_edges(self, current: TaskStatus, target: TaskStatus) -> None:
        assert not is_valid_transition(current, target)

    def test_approved_is_terminal(self) -> None:
        assert VALID_TASK_TRANSITIONS[TaskStatus.APPROVED] == frozenset()
        assert _make_task(status=TaskStatus.APPROVED).is_terminal
        assert not _make_task(status=TaskStatus.REJECTED).is_terminal


class TestTaskModel:
    def test_defaults(self) -> None:
        task = _make_task()
        assert task.status == TaskStatus.ASSIGNED
        assert task.priority == TaskPriority.MEDIUM
        assert task.is_deleted is False
        assert task.rejection_reason is None

    def test_empty_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _make_task(title="")

    def test_title_too_long_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _make_task(title="x" * 201)

    def test_naive_due_date_becomes_utc(self) -> None:
        task = _make_task(due_date=datetime(2026, 3, 11, 12, 0))
        assert task.due_date.tzinfo == timezone.utc


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


class TestIsOverdue:
    def test_past_due_and_open(self) -> None:
        task = _make_task(due_date=NOW - timedelta(hours=1), status=TaskStatus.IN_PROGRESS)
        assert is_overdue(task, NOW)

    def test_future_due_not_overdue(self) -> None:
        assert not is_overdue(_make_task(), NOW)

    def test_submitted_past_due_still_overdue(self) -> None:
        task = _make_task(due_date=NOW - timedelta(days=2), status=TaskStatus.SUBMITTED)
        assert is_overdue(task, NOW)

    @pytest.mark.parametrize("status", [TaskStatus.APPROVED, TaskStatus.REJECTED])
    def test_closed_tasks_never_overdue(self, status: TaskStatus) -> None:
        task = _make_task(due_date=NOW - timedelta(days=2), status=status)
        assert not is_overdue(task, NOW)


class TestDaysUntilDue:
    def test_rounds_partial_days_up(self) -> None:
        task = _make_task(due_date=NOW + timedelta(hours=30))
        assert days_until_due(task, NOW) == 2

    def test_exact_days(self) -> None:
        task = _make_task(due_date=NOW + timedelta(days=3))
        assert days_until_due(task, NOW) == 3

    def test_negative_once_past_due(self) -> None:
        task = _make_task(due_date=NOW - timedelta(days=2))
        assert days_until_due(task, NOW) == -2

    def test_naive_now_accepted(self) -> None:
        task = _make_task(due_date=NOW + timedelta(days=1))
        assert days_until_due(task, NOW.replace(tzinfo=None)) == 1


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------


class TestPrincipal:
    def test_defaults_to_pending_user(self) -> None:
        p = _make_principal()
        assert p.role == Role.USER
        assert p.account_status == AccountStatus.PENDING
        assert not p.is_approved

    def test_is_frozen(self) -> None:
        p = _make_principal()
        with pytest.raises(ValidationError):
            p.role = Role.ADMIN  # type: ignore[misc]

    @pytest.mark.parametrize("username", ["ab", "has space", "x" * 51, "semi;colon"])
    def test_invalid_username(self, username: str) -> None:
        with pytest.raises(ValidationError):
            _make_principal(username=username)

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            _make_principal(email="not-an-email")

    def test_account_actions(self) -> None:
        approve_from, approved = ACCOUNT_STATUS_ACTIONS["approve"]
        assert approve_from == {AccountStatus.PENDING, AccountStatus.REJECTED}
        assert approved == AccountStatus.APPROVED
        reactivate_from, reactivated = ACCOUNT_STATUS_ACTIONS["reactivate"]
        assert reactivate_from == {AccountStatus.SUSPENDED}
        assert reactivated == AccountStatus.APPROVED
        assert AccountStatus.PENDING not in ACCOUNT_STATUS_ACTIONS["suspend"][0]

    def test_admin_role_is_fixed(self) -> None:
        assert VALID_ROLE_CHANGES[Role.ADMIN] == frozenset()
        assert VALID_ROLE_CHANGES[Role.USER] == frozenset({Role.APPROVER})


# ---------------------------------------------------------------------------
# Room + CodeRotation + Notification
# ---------------------------------------------------------------------------


class TestRoom:
    def test_valid_code(self) -> None:
        room = Room(name="Ops", current_code="AB12CD", created_by=uuid7())
        assert room.current_code == "AB12CD"

    @pytest.mark.parametrize("code", ["ab12cd", "AB12C", "AB12CDE", "AB-2CD"])
    def test_invalid_code(self, code: str) -> None:
        with pytest.raises(ValidationError):
            Room(name="Ops", current_code=code, created_by=uuid7())

    def test_rotation_is_frozen(self) -> None:
        rotation = CodeRotation(
            room_id=uuid7(), old_code="AAAAAA", new_code="BBBBBB", rotated_by=uuid7()
        )
        with pytest.raises(ValidationError):
            rotation.new_code = "CCCCCC"  # type: ignore[misc]


class TestNotification:
    def test_unread_by_default(self) -> None:
        n = Notification(user_id=uuid7(), type="task_assigned", message="hi")
        assert n.is_read is False
        assert n.created_at <= utc_now()

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Notification(user_id=uuid7(), type="task_deleted", message="hi")
