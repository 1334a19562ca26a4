"""FastAPI notification endpoints — polled by clients, never pushed.

GET  /v1/notifications?limit=&unread_only=  — newest first
GET  /v1/notifications/unread-count
POST /v1/notifications/{notification_id}/read
POST /v1/notifications/read-all
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.api.dependencies import get_current_principal, get_notification_dispatcher
from src.governance.notifications import NotificationDispatcher
from src.models.notification import Notification
from src.models.principal import Principal

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class NotificationResponse(BaseModel):
    notification_id: str
    task_id: str | None
    type: str
    message: str
    is_read: bool
    created_at: str

    @classmethod
    def from_notification(cls, n: Notification) -> "NotificationResponse":
        return cls(
            notification_id=str(n.notification_id),
            task_id=str(n.task_id) if n.task_id else None,
            type=n.type.value,
            message=n.message,
            is_read=n.is_read,
            created_at=n.created_at.isoformat(),
        )


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int | None = Query(default=None, ge=1),
    unread_only: bool = False,
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> NotificationListResponse:
    items = await dispatcher.list_for_user(principal, limit, unread_only=unread_only)
    unread = await dispatcher.unread_count(principal)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_notification(n) for n in items],
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await dispatcher.unread_count(principal))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await dispatcher.mark_all_as_read(principal))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> NotificationResponse:
    notification = await dispatcher.mark_as_read(principal, notification_id)
    return NotificationResponse.from_notification(notification)
