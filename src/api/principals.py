"""FastAPI principal endpoints — signup and own status.

POST /v1/principals — create the profile for an authenticated identity
GET  /v1/me         — read own profile and account status (any status)
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_current_principal, get_room_boundary
from src.governance.room_boundary import RoomBoundary
from src.models.common import Role
from src.models.principal import Principal

router = APIRouter(prefix="/v1", tags=["principals"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    principal_id: UUID
    username: str
    email: str
    role: Role = Role.USER
    room_code: str | None = None


class PrincipalResponse(BaseModel):
    principal_id: str
    username: str
    email: str
    room_id: str | None
    role: str
    account_status: str

    @classmethod
    def from_principal(cls, p: Principal) -> "PrincipalResponse":
        return cls(
            principal_id=str(p.principal_id),
            username=p.username,
            email=p.email,
            room_id=str(p.room_id) if p.room_id else None,
            role=p.role.value,
            account_status=p.account_status.value,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/principals", status_code=201, response_model=PrincipalResponse)
async def signup(
    body: SignupRequest,
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    """Register a principal. Users join a room by code and start pending."""
    principal = await boundary.register(
        principal_id=body.principal_id,
        username=body.username,
        email=body.email,
        role=body.role,
        room_code=body.room_code,
    )
    return PrincipalResponse.from_principal(principal)


@router.get("/me", response_model=PrincipalResponse)
async def read_own_status(
    principal: Principal = Depends(get_current_principal),
) -> PrincipalResponse:
    """Allowed for pending, rejected and suspended accounts too."""
    return PrincipalResponse.from_principal(principal)
