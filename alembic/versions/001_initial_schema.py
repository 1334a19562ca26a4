"""Initial schema — rooms, code history, principals, tasks, notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Tenancy --
    op.create_table(
        "rooms",
        sa.Column("room_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("current_code", sa.String(6), nullable=False, unique=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Code history (APPEND-ONLY) --
    op.create_table(
        "code_rotations",
        sa.Column("rotation_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "room_id", UUID(as_uuid=True),
            sa.ForeignKey("rooms.room_id"), nullable=False, index=True,
        ),
        sa.Column("old_code", sa.String(6), nullable=False),
        sa.Column("new_code", sa.String(6), nullable=False),
        sa.Column("rotated_by", UUID(as_uuid=True), nullable=False),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Identity --
    op.create_table(
        "principals",
        sa.Column("principal_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column(
            "room_id", UUID(as_uuid=True),
            sa.ForeignKey("rooms.room_id"), nullable=True, index=True,
        ),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("account_status", sa.String(20), nullable=False),
        sa.Column("promoted_by", UUID(as_uuid=True), nullable=True),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Tasks (OPERATIONAL, conditional status writes) --
    op.create_table(
        "tasks",
        sa.Column("task_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "room_id", UUID(as_uuid=True),
            sa.ForeignKey("rooms.room_id"), nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "assigned_to", UUID(as_uuid=True),
            sa.ForeignKey("principals.principal_id"), nullable=False, index=True,
        ),
        sa.Column(
            "created_by", UUID(as_uuid=True),
            sa.ForeignKey("principals.principal_id"), nullable=False,
        ),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", UUID(as_uuid=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("is_deleted", sa.Boolean, server_default=sa.false(), nullable=False),
    )
    op.create_index("ix_tasks_room_status", "tasks", ["room_id", "status"])

    # -- Notifications --
    op.create_table(
        "notifications",
        sa.Column("notification_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("principals.principal_id"), nullable=False,
        ),
        sa.Column("task_id", UUID(as_uuid=True), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_tasks_room_status", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("principals")
    op.drop_table("code_rotations")
    op.drop_table("rooms")
