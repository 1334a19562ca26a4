"""Principal model — an authenticated member with a role and account status."""

from uuid import UUID

from pydantic import Field

from src.models.common import (
    AccountStatus,
    Role,
    TaskroomBase,
    UTCTimestamp,
    UUIDv7,
    utc_now,
)

USERNAME_PATTERN = r"^[A-Za-z0-9_-]{3,50}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
EMAIL_MAX_LENGTH = 320


# ---------------------------------------------------------------------------
# Account status transitions (administrative, not the task lifecycle)
# ---------------------------------------------------------------------------

# action -> (statuses it may start from, status it produces)
ACCOUNT_STATUS_ACTIONS: dict[str, tuple[frozenset[AccountStatus], AccountStatus]] = {
    "approve": (
        frozenset({AccountStatus.PENDING, AccountStatus.REJECTED}),
        AccountStatus.APPROVED,
    ),
    "reject": (frozenset({AccountStatus.PENDING}), AccountStatus.REJECTED),
    "suspend": (frozenset({AccountStatus.APPROVED}), AccountStatus.SUSPENDED),
    "reactivate": (frozenset({AccountStatus.SUSPENDED}), AccountStatus.APPROVED),
}

# Role edges an admin may apply to a member (promotion / demotion).
VALID_ROLE_CHANGES: dict[Role, frozenset[Role]] = {
    Role.USER: frozenset({Role.APPROVER}),
    Role.APPROVER: frozenset({Role.USER}),
    Role.ADMIN: frozenset(),
}


class Principal(TaskroomBase, frozen=True):
    """Request-scoped view of a member, passed explicitly to every operation."""

    principal_id: UUIDv7
    username: str = Field(..., pattern=USERNAME_PATTERN)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=EMAIL_MAX_LENGTH)
    room_id: UUID | None = None
    role: Role = Role.USER
    account_status: AccountStatus = AccountStatus.PENDING
    promoted_by: UUID | None = None
    promoted_at: UTCTimestamp | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def is_approved(self) -> bool:
        return self.account_status == AccountStatus.APPROVED
