"""Task model, lifecycle transition table, and derived deadline fields."""

import math
from datetime import datetime
from uuid import UUID

from pydantic import Field

from src.models.common import (
    TaskPriority,
    TaskroomBase,
    TaskStatus,
    UTCTimestamp,
    UUIDv7,
    ensure_utc,
    new_uuid7,
    utc_now,
)


# ---------------------------------------------------------------------------
# Valid task status transitions (state machine)
# ---------------------------------------------------------------------------

VALID_TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.ASSIGNED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.SUBMITTED}),
    TaskStatus.SUBMITTED: frozenset({
        TaskStatus.APPROVED,
        TaskStatus.REJECTED,
    }),
    TaskStatus.REJECTED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.APPROVED: frozenset(),
}

INITIAL_TASK_STATUS = TaskStatus.ASSIGNED

# Statuses for which a passed due date no longer counts as overdue
_CLOSED_STATUSES = frozenset({TaskStatus.APPROVED, TaskStatus.REJECTED})

# Fields an admin may change while the task is still ASSIGNED
EDITABLE_TASK_FIELDS = frozenset({
    "title",
    "description",
    "assigned_to",
    "priority",
    "due_date",
})

_SECONDS_PER_DAY = 86400


def is_valid_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in VALID_TASK_TRANSITIONS.get(current, frozenset())


class Task(TaskroomBase):
    """A unit of work owned by a room and assigned to one member."""

    task_id: UUIDv7 = Field(default_factory=new_uuid7)
    room_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    assigned_to: UUID
    created_by: UUID
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = INITIAL_TASK_STATUS
    due_date: UTCTimestamp
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)
    submitted_at: UTCTimestamp | None = None
    approved_at: UTCTimestamp | None = None
    approved_by: UUID | None = None
    rejection_reason: str | None = None
    is_deleted: bool = False

    @property
    def is_terminal(self) -> bool:
        return not VALID_TASK_TRANSITIONS.get(self.status)


# ---------------------------------------------------------------------------
# Derived fields: computed at read time, never stored
# ---------------------------------------------------------------------------


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    """True iff the due date has passed and the task is not approved/rejected."""
    now = ensure_utc(now) if now is not None else utc_now()
    return task.due_date < now and task.status not in _CLOSED_STATUSES


def days_until_due(task: Task, now: datetime | None = None) -> int:
    """Whole days until the due date, rounded up (negative once past due)."""
    now = ensure_utc(now) if now is not None else utc_now()
    seconds = (task.due_date - now).total_seconds()
    return math.ceil(seconds / _SECONDS_PER_DAY)
