"""Notification model — per-user record of lifecycle events."""

from uuid import UUID

from pydantic import Field

from src.models.common import (
    NotificationType,
    TaskroomBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


class Notification(TaskroomBase):
    """Owned by the addressed user; only the read flag ever changes."""

    notification_id: UUIDv7 = Field(default_factory=new_uuid7)
    user_id: UUID
    task_id: UUID | None = None
    type: NotificationType
    message: str = Field(..., min_length=1)
    is_read: bool = False
    created_at: UTCTimestamp = Field(default_factory=utc_now)
