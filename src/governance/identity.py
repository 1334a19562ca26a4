"""Identity & membership resolver.

Maps an authenticated principal id (supplied by the authentication
provider) to a Principal, and answers authorization questions as pure
functions over (role, account status, required roles). Storage shape
never leaks into the checks.
"""

from collections.abc import Iterable
from uuid import UUID

from src.db.retry import RetryPolicy
from src.governance.errors import (
    Forbidden,
    NotFound,
    PendingApproval,
    Rejected,
    Suspended,
)
from src.models.common import AccountStatus, Role
from src.models.principal import Principal
from src.repositories.principals import PrincipalRepository

ALL_ROLES: frozenset[Role] = frozenset(Role)
REVIEWER_ROLES: frozenset[Role] = frozenset({Role.APPROVER, Role.ADMIN})
WORKER_ROLES: frozenset[Role] = frozenset({Role.USER, Role.APPROVER})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})

_STATUS_ERRORS = {
    AccountStatus.PENDING: PendingApproval,
    AccountStatus.SUSPENDED: Suspended,
    AccountStatus.REJECTED: Rejected,
}


def role_satisfies(role: Role, required: Iterable[Role]) -> bool:
    """Set-membership check; admin implicitly satisfies approver-gated sets."""
    required = frozenset(required)
    if role in required:
        return True
    return role == Role.ADMIN and Role.APPROVER in required


def check_account_status(principal: Principal) -> None:
    """Raise the status-specific error unless the principal is approved."""
    error = _STATUS_ERRORS.get(principal.account_status)
    if error is not None:
        raise error()


def authorize(principal: Principal, required_roles: Iterable[Role]) -> Principal:
    """Gate an action on account status first, then on role.

    Returns the principal so call sites can chain.

    Raises:
        PendingApproval / Suspended / Rejected: account not approved.
        Forbidden: role not in ``required_roles``.
    """
    check_account_status(principal)
    required = frozenset(required_roles)
    if not role_satisfies(principal.role, required):
        allowed = ", ".join(sorted(r.value for r in required))
        raise Forbidden(
            f"Role '{principal.role.value}' is not permitted to perform this action "
            f"(requires one of: {allowed})."
        )
    return principal


class IdentityResolver:
    """Resolve principal ids to Principal values."""

    def __init__(
        self,
        principals: PrincipalRepository,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._principals = principals
        self._retry = retry or RetryPolicy()

    async def resolve(self, principal_id: UUID) -> Principal:
        """Raises NotFound if no principal exists for ``principal_id``."""
        row = await self._retry.run(lambda: self._principals.get(principal_id))
        if row is None:
            raise NotFound.for_entity("Principal", principal_id)
        return Principal.model_validate(row)

    async def read_own_status(self, principal_id: UUID) -> Principal:
        """The one operation permitted regardless of account status."""
        return await self.resolve(principal_id)

    async def resolve_authorized(
        self, principal_id: UUID, required_roles: Iterable[Role] = ALL_ROLES
    ) -> Principal:
        return authorize(await self.resolve(principal_id), required_roles)
