"""SQLAlchemy ORM table models for Taskroom.

All 5 tables defined in a single file.

Categories:
- APPEND-ONLY: CodeRotation (audit history, never updated or deleted)
- OPERATIONAL: Room (code rotation), Principal (role / account status),
               Task (status via conditional writes), Notification (read flag)
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.db.session import Base


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------


class RoomRow(Base):
    """Tenant boundary. current_code is unique across all rooms."""

    __tablename__ = "rooms"

    room_id: Mapped[UUID] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CodeRotationRow(Base):
    """Append-only room code history."""

    __tablename__ = "code_rotations"

    rotation_id: Mapped[UUID] = mapped_column(primary_key=True)
    room_id: Mapped[UUID] = mapped_column(
        ForeignKey("rooms.room_id"), nullable=False, index=True
    )
    old_code: Mapped[str] = mapped_column(String(6), nullable=False)
    new_code: Mapped[str] = mapped_column(String(6), nullable=False)
    rotated_by: Mapped[UUID] = mapped_column(nullable=False)
    rotated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class PrincipalRow(Base):
    """Operational — role and account_status are independent columns."""

    __tablename__ = "principals"

    principal_id: Mapped[UUID] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    room_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("rooms.room_id"), nullable=True, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    account_status: Mapped[str] = mapped_column(String(20), nullable=False)
    promoted_by: Mapped[UUID | None] = mapped_column(nullable=True)
    promoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Tasks: status changes only through conditional UPDATE
# ---------------------------------------------------------------------------


class TaskRow(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_room_status", "room_id", "status"),
    )

    task_id: Mapped[UUID] = mapped_column(primary_key=True)
    room_id: Mapped[UUID] = mapped_column(ForeignKey("rooms.room_id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[UUID] = mapped_column(
        ForeignKey("principals.principal_id"), nullable=False, index=True
    )
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("principals.principal_id"), nullable=False
    )
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationRow(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    notification_id: Mapped[UUID] = mapped_column(primary_key=True)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("principals.principal_id"), nullable=False
    )
    task_id: Mapped[UUID | None] = mapped_column(nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
