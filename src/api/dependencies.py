"""FastAPI dependency injection factories for repositories and services.

Each factory takes AsyncSession via Depends(get_async_session) and returns
a repository or service instance. API endpoints use these via Depends().

The caller's identity arrives from the authentication provider as the
``X-Principal-Id`` header; ``get_current_principal`` resolves it to a
Principal that is then passed explicitly into every service call.
"""

from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings, get_settings
from src.db.retry import RetryPolicy
from src.db.session import get_async_session
from src.governance.identity import IdentityResolver
from src.governance.lifecycle import LifecycleEngine
from src.governance.notifications import NotificationDispatcher
from src.governance.room_boundary import RoomBoundary
from src.models.principal import Principal
from src.repositories.notifications import NotificationRepository
from src.repositories.principals import PrincipalRepository
from src.repositories.rooms import CodeRotationRepository, RoomRepository
from src.repositories.tasks import TaskRepository

# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


async def get_principal_repo(
    session: AsyncSession = Depends(get_async_session),
) -> PrincipalRepository:
    return PrincipalRepository(session)


async def get_room_repo(
    session: AsyncSession = Depends(get_async_session),
) -> RoomRepository:
    return RoomRepository(session)


async def get_code_rotation_repo(
    session: AsyncSession = Depends(get_async_session),
) -> CodeRotationRepository:
    return CodeRotationRepository(session)


async def get_task_repo(
    session: AsyncSession = Depends(get_async_session),
) -> TaskRepository:
    return TaskRepository(session)


async def get_notification_repo(
    session: AsyncSession = Depends(get_async_session),
) -> NotificationRepository:
    return NotificationRepository(session)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


async def get_identity_resolver(
    principals: PrincipalRepository = Depends(get_principal_repo),
    settings: Settings = Depends(get_settings),
) -> IdentityResolver:
    return IdentityResolver(principals, RetryPolicy.from_settings(settings))


async def get_room_boundary(
    session: AsyncSession = Depends(get_async_session),
    rooms: RoomRepository = Depends(get_room_repo),
    rotations: CodeRotationRepository = Depends(get_code_rotation_repo),
    principals: PrincipalRepository = Depends(get_principal_repo),
    settings: Settings = Depends(get_settings),
) -> RoomBoundary:
    return RoomBoundary(
        session,
        rooms=rooms,
        rotations=rotations,
        principals=principals,
        max_code_attempts=settings.ROOM_CODE_MAX_ATTEMPTS,
    )


async def get_notification_dispatcher(
    notifications: NotificationRepository = Depends(get_notification_repo),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    return NotificationDispatcher(
        notifications,
        default_limit=settings.NOTIFICATION_DEFAULT_LIMIT,
        max_limit=settings.NOTIFICATION_MAX_LIMIT,
    )


async def get_lifecycle_engine(
    tasks: TaskRepository = Depends(get_task_repo),
    principals: PrincipalRepository = Depends(get_principal_repo),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> LifecycleEngine:
    return LifecycleEngine(tasks, principals, dispatcher)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


async def get_current_principal(
    x_principal_id: UUID = Header(..., alias="X-Principal-Id"),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Principal:
    """Resolve the authenticated caller. Account status is checked per action."""
    return await resolver.resolve(x_principal_id)
