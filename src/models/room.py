"""Room model — tenant boundary for members, tasks, and audit history."""

from uuid import UUID

from pydantic import Field

from src.models.common import (
    TaskroomBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)

ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ROOM_CODE_LENGTH = 6
ROOM_CODE_PATTERN = r"^[A-Z0-9]{6}$"
ROOM_NAME_MAX_LENGTH = 255


class Room(TaskroomBase):
    """Room (tenant). Every task and membership belongs to exactly one room.

    current_code is the join token for new members; rotating it never
    affects existing memberships.
    """

    room_id: UUIDv7 = Field(default_factory=new_uuid7)
    name: str = Field(..., min_length=1, max_length=ROOM_NAME_MAX_LENGTH)
    current_code: str = Field(..., pattern=ROOM_CODE_PATTERN)
    created_by: UUID
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class CodeRotation(TaskroomBase, frozen=True):
    """Immutable audit entry appended on every room code rotation."""

    rotation_id: UUIDv7 = Field(default_factory=new_uuid7)
    room_id: UUID
    old_code: str = Field(..., pattern=ROOM_CODE_PATTERN)
    new_code: str = Field(..., pattern=ROOM_CODE_PATTERN)
    rotated_by: UUID
    rotated_at: UTCTimestamp = Field(default_factory=utc_now)
