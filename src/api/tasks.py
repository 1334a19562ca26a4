"""FastAPI task endpoints — room-scoped lifecycle operations.

POST   /v1/rooms/{room_id}/tasks                          — create (admin)
GET    /v1/rooms/{room_id}/tasks?search=&status=          — list
GET    /v1/rooms/{room_id}/tasks/summary                  — counts per status
GET    /v1/rooms/{room_id}/tasks/{task_id}                — detail
PATCH  /v1/rooms/{room_id}/tasks/{task_id}                — edit while assigned
DELETE /v1/rooms/{room_id}/tasks/{task_id}                — soft delete
POST   /v1/rooms/{room_id}/tasks/{task_id}/transitions    — change status
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_current_principal, get_lifecycle_engine
from src.governance.identity import check_account_status
from src.governance.lifecycle import LifecycleEngine
from src.governance.room_boundary import assert_same_room
from src.models.common import TaskPriority, TaskStatus, utc_now
from src.models.principal import Principal
from src.models.task import Task, days_until_due, is_overdue

router = APIRouter(prefix="/v1/rooms", tags=["tasks"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateTaskRequest(BaseModel):
    title: str
    description: str | None = None
    assigned_to: UUID
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime


class EditTaskRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    assigned_to: UUID | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None


class TransitionRequest(BaseModel):
    to_status: TaskStatus
    rejection_reason: str | None = None


class TaskResponse(BaseModel):
    task_id: str
    room_id: str
    title: str
    description: str | None
    assigned_to: str
    created_by: str
    priority: str
    status: str
    due_date: str
    created_at: str
    updated_at: str
    submitted_at: str | None = None
    approved_at: str | None = None
    approved_by: str | None = None
    rejection_reason: str | None = None
    is_overdue: bool
    days_until_due: int

    @classmethod
    def from_task(cls, task: Task, now: datetime | None = None) -> "TaskResponse":
        now = now or utc_now()
        return cls(
            task_id=str(task.task_id),
            room_id=str(task.room_id),
            title=task.title,
            description=task.description,
            assigned_to=str(task.assigned_to),
            created_by=str(task.created_by),
            priority=task.priority.value,
            status=task.status.value,
            due_date=task.due_date.isoformat(),
            created_at=task.created_at.isoformat(),
            updated_at=task.updated_at.isoformat(),
            submitted_at=task.submitted_at.isoformat() if task.submitted_at else None,
            approved_at=task.approved_at.isoformat() if task.approved_at else None,
            approved_by=str(task.approved_by) if task.approved_by else None,
            rejection_reason=task.rejection_reason,
            is_overdue=is_overdue(task, now),
            days_until_due=days_until_due(task, now),
        )


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int


class TaskSummaryResponse(BaseModel):
    total: int
    overdue: int
    by_status: dict[str, int]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scope(actor: Principal, room_id: UUID) -> None:
    check_account_status(actor)
    assert_same_room(actor, room_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/{room_id}/tasks", status_code=201, response_model=TaskResponse)
async def create_task(
    room_id: UUID,
    body: CreateTaskRequest,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskResponse:
    """Create a task in ``assigned``; the assignee is notified."""
    task = await engine.create_task(
        actor,
        room_id=room_id,
        title=body.title,
        description=body.description,
        assigned_to=body.assigned_to,
        priority=body.priority,
        due_date=body.due_date,
    )
    return TaskResponse.from_task(task)


@router.get("/{room_id}/tasks", response_model=TaskListResponse)
async def list_tasks(
    room_id: UUID,
    search: str | None = None,
    status: TaskStatus | None = None,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskListResponse:
    _scope(actor, room_id)
    tasks = await engine.list_tasks(actor, search=search, status=status)
    now = utc_now()
    return TaskListResponse(
        tasks=[TaskResponse.from_task(t, now) for t in tasks],
        total=len(tasks),
    )


@router.get("/{room_id}/tasks/summary", response_model=TaskSummaryResponse)
async def task_summary(
    room_id: UUID,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskSummaryResponse:
    _scope(actor, room_id)
    summary = await engine.room_summary(actor)
    return TaskSummaryResponse(
        total=summary.total,
        overdue=summary.overdue,
        by_status={s.value: n for s, n in summary.by_status.items()},
    )


@router.get("/{room_id}/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    room_id: UUID,
    task_id: UUID,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskResponse:
    _scope(actor, room_id)
    return TaskResponse.from_task(await engine.get_task(actor, task_id))


@router.patch("/{room_id}/tasks/{task_id}", response_model=TaskResponse)
async def edit_task(
    room_id: UUID,
    task_id: UUID,
    body: EditTaskRequest,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskResponse:
    """Only fields present in the body are changed."""
    _scope(actor, room_id)
    changes = body.model_dump(exclude_unset=True)
    task = await engine.edit_task(actor, task_id, changes)
    return TaskResponse.from_task(task)


@router.delete("/{room_id}/tasks/{task_id}", status_code=204)
async def delete_task(
    room_id: UUID,
    task_id: UUID,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> None:
    _scope(actor, room_id)
    await engine.delete_task(actor, task_id)


@router.post("/{room_id}/tasks/{task_id}/transitions", response_model=TaskResponse)
async def transition_task(
    room_id: UUID,
    task_id: UUID,
    body: TransitionRequest,
    actor: Principal = Depends(get_current_principal),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> TaskResponse:
    _scope(actor, room_id)
    task = await engine.transition(
        actor, task_id, body.to_status, rejection_reason=body.rejection_reason
    )
    return TaskResponse.from_task(task)
