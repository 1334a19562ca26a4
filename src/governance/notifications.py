"""Notification dispatcher.

``dispatch`` is called by the lifecycle engine as a side effect of
transitions; presentation code only reads (``list_for_user``) and toggles
read state. Delivery is pull-based: any poller can re-query at will.
"""

from uuid import UUID

import structlog

from src.governance.errors import Forbidden, NotFound
from src.governance.identity import ALL_ROLES, authorize
from src.models.common import NotificationType, new_uuid7
from src.models.notification import Notification
from src.models.principal import Principal
from src.repositories.notifications import NotificationRepository

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        notifications: NotificationRepository,
        *,
        default_limit: int = 20,
        max_limit: int = 100,
    ) -> None:
        self._notifications = notifications
        self._default_limit = default_limit
        self._max_limit = max_limit

    async def dispatch(
        self,
        user_id: UUID,
        task_id: UUID | None,
        type: NotificationType,
        message: str,
    ) -> Notification:
        row = await self._notifications.create(
            notification_id=new_uuid7(), user_id=user_id, task_id=task_id,
            type=type.value, message=message,
        )
        logger.info(
            "notification_dispatched",
            user_id=str(user_id),
            task_id=str(task_id) if task_id else None,
            type=type.value,
        )
        return Notification.model_validate(row)

    async def list_for_user(
        self,
        principal: Principal,
        limit: int | None = None,
        *,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Newest first. Re-querying always reflects the latest state."""
        authorize(principal, ALL_ROLES)
        limit = self._clamp_limit(limit)
        rows = await self._notifications.list_for_user(
            principal.principal_id, limit=limit, unread_only=unread_only
        )
        return [Notification.model_validate(r) for r in rows]

    async def unread_count(self, principal: Principal) -> int:
        authorize(principal, ALL_ROLES)
        return await self._notifications.count_unread(principal.principal_id)

    async def mark_as_read(self, principal: Principal, notification_id: UUID) -> Notification:
        """Idempotent: marking an already-read notification is a no-op."""
        authorize(principal, ALL_ROLES)
        row = await self._notifications.get(notification_id)
        if row is None:
            raise NotFound.for_entity("Notification", notification_id)
        if row.user_id != principal.principal_id:
            raise Forbidden("You can only update your own notifications.")
        row = await self._notifications.mark_read(notification_id)
        return Notification.model_validate(row)

    async def mark_all_as_read(self, principal: Principal) -> int:
        """Returns the number of notifications that changed; 0 on repeat calls."""
        authorize(principal, ALL_ROLES)
        return await self._notifications.mark_all_read(principal.principal_id)

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        return max(1, min(limit, self._max_limit))
