"""Shared types, enums, and base models used across Taskroom domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalise others."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    Field(description="UTC timezone-aware timestamp."),
]


# --- Shared enums ---


class Role(StrEnum):
    """Closed set of member roles. Independent of AccountStatus."""

    USER = "user"
    APPROVER = "approver"
    ADMIN = "admin"


class AccountStatus(StrEnum):
    """Account approval state for a principal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class TaskStatus(StrEnum):
    """Task lifecycle states."""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationType(StrEnum):
    """Notification kinds emitted by the lifecycle engine."""

    TASK_ASSIGNED = "task_assigned"
    TASK_APPROVED = "task_approved"
    TASK_REJECTED = "task_rejected"


# --- Base model ---


class TaskroomBase(BaseModel):
    """Base model with common configuration for all Taskroom Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
