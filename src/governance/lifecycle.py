"""Task lifecycle engine — the state machine behind every task action.

States: assigned -> in_progress -> submitted -> {approved | rejected},
plus the rework edge rejected -> in_progress. approved is terminal.

Checks run in a fixed order so each failure maps to one error kind:
account status -> task exists -> same room -> edge valid (InvalidTransition)
-> role/ownership (Forbidden) -> field validation (ValidationError)
-> conditional write (ConcurrentModification) -> notification.

Every write is a compare-and-set on the status and assignee read at the
start of the operation; a lost race surfaces as ConcurrentModification and
is never retried here.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from src.governance.errors import (
    ConcurrentModification,
    CrossTenantAccess,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from src.governance.identity import (
    ADMIN_ONLY,
    ALL_ROLES,
    REVIEWER_ROLES,
    WORKER_ROLES,
    authorize,
)
from src.governance.notifications import NotificationDispatcher
from src.governance.room_boundary import assert_same_room
from src.models.common import (
    AccountStatus,
    NotificationType,
    Role,
    TaskPriority,
    TaskStatus,
    ensure_utc,
    new_uuid7,
    utc_now,
)
from src.models.principal import Principal
from src.models.task import (
    EDITABLE_TASK_FIELDS,
    INITIAL_TASK_STATUS,
    Task,
    is_overdue,
    is_valid_transition,
)
from src.repositories.principals import PrincipalRepository
from src.repositories.tasks import TaskRepository

logger = structlog.get_logger(__name__)

# Edges performed by the assignee
_WORK_EDGES = frozenset({
    (TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS),
    (TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED),
    (TaskStatus.REJECTED, TaskStatus.IN_PROGRESS),
})

# Edges performed by a reviewer (approver or admin)
_REVIEW_EDGES = frozenset({
    (TaskStatus.SUBMITTED, TaskStatus.APPROVED),
    (TaskStatus.SUBMITTED, TaskStatus.REJECTED),
})

_TITLE_MAX = 200
_DESCRIPTION_MAX = 5000


@dataclass
class TaskSummary:
    """Per-room (or per-assignee) task counts for dashboards."""

    total: int = 0
    overdue: int = 0
    by_status: dict[TaskStatus, int] = field(default_factory=dict)


class LifecycleEngine:
    """Validates and applies task creation, transitions, edits, and deletion."""

    def __init__(
        self,
        tasks: TaskRepository,
        principals: PrincipalRepository,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._tasks = tasks
        self._principals = principals
        self._dispatcher = dispatcher

    # ----- Creation -----

    async def create_task(
        self,
        actor: Principal,
        *,
        room_id: UUID,
        title: str,
        assigned_to: UUID,
        due_date: datetime,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        description: str | None = None,
    ) -> Task:
        """Create a task in ``assigned`` and notify the assignee."""
        authorize(actor, ADMIN_ONLY)
        assert_same_room(actor, room_id)
        title = _clean_title(title)
        description = _clean_description(description)
        priority = _parse_priority(priority)
        await self._validate_assignee(room_id, assigned_to)

        row = await self._tasks.create(
            task_id=new_uuid7(), room_id=room_id, title=title,
            description=description, assigned_to=assigned_to,
            created_by=actor.principal_id, priority=priority.value,
            status=INITIAL_TASK_STATUS.value, due_date=ensure_utc(due_date),
        )
        task = Task.model_validate(row)
        await self._dispatcher.dispatch(
            task.assigned_to, task.task_id, NotificationType.TASK_ASSIGNED,
            f"New task assigned: {task.title}",
        )
        logger.info(
            "task_created",
            task_id=str(task.task_id),
            room_id=str(room_id),
            assigned_to=str(assigned_to),
            created_by=str(actor.principal_id),
        )
        return task

    # ----- Reads -----

    async def get_task(self, actor: Principal, task_id: UUID) -> Task:
        authorize(actor, ALL_ROLES)
        task = await self._load_task(actor, task_id)
        if actor.role == Role.USER and task.assigned_to != actor.principal_id:
            raise Forbidden("You can only view tasks assigned to you.")
        return task

    async def list_tasks(
        self,
        actor: Principal,
        *,
        search: str | None = None,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        """Room tasks; plain users only see their own assignments."""
        authorize(actor, ALL_ROLES)
        if actor.room_id is None:
            raise CrossTenantAccess("You are not a member of any room.")
        rows = await self._tasks.list_by_room(
            actor.room_id,
            search=search,
            status=status.value if status else None,
            assigned_to=actor.principal_id if actor.role == Role.USER else None,
        )
        return [Task.model_validate(r) for r in rows]

    async def room_summary(
        self, actor: Principal, now: datetime | None = None
    ) -> TaskSummary:
        tasks = await self.list_tasks(actor)
        now = now or utc_now()
        counts = Counter(t.status for t in tasks)
        return TaskSummary(
            total=len(tasks),
            overdue=sum(1 for t in tasks if is_overdue(t, now)),
            by_status={s: counts.get(s, 0) for s in TaskStatus},
        )

    # ----- Transitions -----

    async def transition(
        self,
        actor: Principal,
        task_id: UUID,
        to_status: TaskStatus,
        *,
        rejection_reason: str | None = None,
    ) -> Task:
        """Read the task, then apply ``to_status`` against that snapshot."""
        authorize(actor, ALL_ROLES)
        task = await self._load_task(actor, task_id)
        return await self.apply_transition(
            actor, task, to_status, rejection_reason=rejection_reason
        )

    async def apply_transition(
        self,
        actor: Principal,
        task: Task,
        to_status: TaskStatus,
        *,
        rejection_reason: str | None = None,
    ) -> Task:
        """Apply a transition to a previously read ``task`` snapshot.

        The write only lands if the stored status and assignee still equal
        ``task.status`` and ``task.assigned_to``; otherwise
        ConcurrentModification.
        """
        authorize(actor, ALL_ROLES)
        assert_same_room(actor, task.room_id)
        current = task.status
        if not is_valid_transition(current, to_status):
            raise InvalidTransition(_transition_message(current, to_status))

        edge = (current, to_status)
        if edge in _REVIEW_EDGES:
            authorize(actor, REVIEWER_ROLES)
            if actor.principal_id == task.assigned_to:
                raise Forbidden("You cannot approve or reject a task assigned to you.")
        elif edge in _WORK_EDGES:
            authorize(actor, WORKER_ROLES)
            if actor.principal_id != task.assigned_to:
                raise Forbidden("Only the assignee can work on this task.")

        now = utc_now()
        values: dict[str, Any] = {"updated_at": now}
        if to_status == TaskStatus.SUBMITTED:
            values["submitted_at"] = now
        elif to_status == TaskStatus.APPROVED:
            values["approved_at"] = now
            values["approved_by"] = actor.principal_id
        elif to_status == TaskStatus.REJECTED:
            reason = (rejection_reason or "").strip()
            if not reason:
                raise ValidationError("A rejection reason is required.")
            values["rejection_reason"] = reason
        elif edge == (TaskStatus.REJECTED, TaskStatus.IN_PROGRESS):
            values["rejection_reason"] = None

        row = await self._tasks.compare_and_set_status(
            task.task_id,
            expected_status=current.value,
            new_status=to_status.value,
            expected_assigned_to=task.assigned_to,
            **values,
        )
        if row is None:
            raise ConcurrentModification(
                f"Task {task.task_id} changed since it was read (expected status "
                f"{current.value}, assignee {task.assigned_to}). Reload it and try again."
            )
        updated = Task.model_validate(row)

        if to_status == TaskStatus.APPROVED:
            await self._dispatcher.dispatch(
                updated.assigned_to, updated.task_id, NotificationType.TASK_APPROVED,
                f"Task approved: {updated.title}",
            )
        elif to_status == TaskStatus.REJECTED:
            await self._dispatcher.dispatch(
                updated.assigned_to, updated.task_id, NotificationType.TASK_REJECTED,
                f"Task rejected: {updated.title}. Reason: {updated.rejection_reason}",
            )

        logger.info(
            "task_transitioned",
            task_id=str(updated.task_id),
            from_status=current.value,
            to_status=to_status.value,
            actor=str(actor.principal_id),
        )
        return updated

    # ----- Edits while assigned -----

    async def edit_task(
        self, actor: Principal, task_id: UUID, changes: dict[str, Any]
    ) -> Task:
        """Change contract fields; only the creating admin, only while assigned."""
        authorize(actor, ADMIN_ONLY)
        task = await self._load_task(actor, task_id)
        self._check_still_assigned(task, "edited")
        self._check_creator(actor, task)
        unknown = set(changes) - EDITABLE_TASK_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")

        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = _clean_title(changes["title"])
        if "description" in changes:
            values["description"] = _clean_description(changes["description"])
        if "priority" in changes:
            values["priority"] = _parse_priority(changes["priority"]).value
        if "due_date" in changes:
            if not isinstance(changes["due_date"], datetime):
                raise ValidationError("Due date must be a datetime.")
            values["due_date"] = ensure_utc(changes["due_date"])
        reassigned = False
        if "assigned_to" in changes and changes["assigned_to"] != task.assigned_to:
            await self._validate_assignee(task.room_id, changes["assigned_to"])
            values["assigned_to"] = changes["assigned_to"]
            reassigned = True
        if not values:
            return task

        row = await self._tasks.update_fields(
            task.task_id,
            expected_status=TaskStatus.ASSIGNED.value,
            expected_assigned_to=task.assigned_to,
            **values,
        )
        if row is None:
            raise ConcurrentModification(
                f"Task {task.task_id} changed since it was read. Reload it and try again."
            )
        updated = Task.model_validate(row)
        if reassigned:
            await self._dispatcher.dispatch(
                updated.assigned_to, updated.task_id, NotificationType.TASK_ASSIGNED,
                f"New task assigned: {updated.title}",
            )
        logger.info(
            "task_edited",
            task_id=str(updated.task_id),
            fields=sorted(values),
            actor=str(actor.principal_id),
        )
        return updated

    async def delete_task(self, actor: Principal, task_id: UUID) -> Task:
        """Soft-delete; in-flight work keeps its audit trail."""
        authorize(actor, ADMIN_ONLY)
        task = await self._load_task(actor, task_id)
        self._check_still_assigned(task, "deleted")
        self._check_creator(actor, task)

        row = await self._tasks.update_fields(
            task.task_id,
            expected_status=TaskStatus.ASSIGNED.value,
            expected_assigned_to=task.assigned_to,
            is_deleted=True,
        )
        if row is None:
            raise ConcurrentModification(
                f"Task {task.task_id} changed since it was read. Reload it and try again."
            )
        logger.info("task_deleted", task_id=str(task.task_id), actor=str(actor.principal_id))
        return Task.model_validate(row)

    # ----- Internals -----

    async def _load_task(self, actor: Principal, task_id: UUID) -> Task:
        row = await self._tasks.get(task_id)
        if row is None or row.is_deleted:
            raise NotFound.for_entity("Task", task_id)
        task = Task.model_validate(row)
        assert_same_room(actor, task.room_id)
        return task

    async def _validate_assignee(self, room_id: UUID, assignee_id: UUID) -> None:
        row = await self._principals.get(assignee_id)
        if (
            row is None
            or row.room_id != room_id
            or row.account_status != AccountStatus.APPROVED.value
        ):
            raise ValidationError("Assignee must be an approved member of this room.")
        if row.role not in {r.value for r in WORKER_ROLES}:
            raise ValidationError("Tasks can only be assigned to users or approvers.")

    @staticmethod
    def _check_still_assigned(task: Task, verb: str) -> None:
        if task.status != TaskStatus.ASSIGNED:
            raise InvalidTransition(
                f"Task can only be {verb} while assigned (currently {task.status.value})."
            )

    @staticmethod
    def _check_creator(actor: Principal, task: Task) -> None:
        if task.created_by != actor.principal_id:
            raise Forbidden("Only the admin who created this task can change it.")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _transition_message(current: TaskStatus, target: TaskStatus) -> str:
    if current == TaskStatus.APPROVED:
        return "Task is already approved and can no longer change status."
    if current == target:
        return f"Task is already {current.value}."
    return f"Cannot move a task from {current.value} to {target.value}."


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required.")
    if len(title) > _TITLE_MAX:
        raise ValidationError(f"Task title must be at most {_TITLE_MAX} characters.")
    return title


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    description = description.strip()
    if len(description) > _DESCRIPTION_MAX:
        raise ValidationError(
            f"Task description must be at most {_DESCRIPTION_MAX} characters."
        )
    return description or None


def _parse_priority(priority: TaskPriority | str) -> TaskPriority:
    try:
        return TaskPriority(priority)
    except ValueError:
        allowed = ", ".join(p.value for p in TaskPriority)
        raise ValidationError(f"Priority must be one of: {allowed}.") from None
