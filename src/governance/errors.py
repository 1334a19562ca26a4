"""Domain error kinds raised by the governance core.

Every kind carries a stable ``code`` (machine-readable, used by the API)
and a human message. Authorization failures (Forbidden, account status,
tenant) and lifecycle failures (InvalidTransition, ConcurrentModification)
are separate classes so callers never conflate "not allowed for you" with
"not allowed for anyone right now".
"""

from uuid import UUID


class TaskroomError(Exception):
    """Base class for all domain errors."""

    code: str = "error"
    http_status: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(TaskroomError):
    code = "not_found"
    http_status = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: UUID) -> "NotFound":
        return cls(f"{entity} {entity_id} not found.")


class Forbidden(TaskroomError):
    code = "forbidden"
    http_status = 403


class CrossTenantAccess(TaskroomError):
    code = "cross_tenant_access"
    http_status = 403


class InvalidTransition(TaskroomError):
    code = "invalid_transition"
    http_status = 409


class ConcurrentModification(TaskroomError):
    code = "concurrent_modification"
    http_status = 409


class InvalidCode(TaskroomError):
    code = "invalid_code"
    http_status = 422


class ValidationError(TaskroomError):
    code = "validation_error"
    http_status = 422


# ---------------------------------------------------------------------------
# Account status gating
# ---------------------------------------------------------------------------


class AccountStatusError(Forbidden):
    """Principal exists but is not approved."""


class PendingApproval(AccountStatusError):
    code = "pending_approval"

    def __init__(self, message: str = "Your account is awaiting admin approval.") -> None:
        super().__init__(message)


class Suspended(AccountStatusError):
    code = "suspended"

    def __init__(self, message: str = "Your account has been suspended. Contact your room admin.") -> None:
        super().__init__(message)


class Rejected(AccountStatusError):
    code = "rejected"

    def __init__(self, message: str = "Your account request was rejected.") -> None:
        super().__init__(message)
