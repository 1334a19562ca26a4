"""FastAPI room endpoints — rooms, codes, and membership administration.

POST /v1/rooms                                          — create room (admin)
GET  /v1/rooms/{room_id}                                — room details
POST /v1/rooms/{room_id}/code/rotate                    — rotate join code
GET  /v1/rooms/{room_id}/code/history                   — rotation history
GET  /v1/rooms/{room_id}/members                        — list members
POST /v1/rooms/{room_id}/members/{principal_id}/approve
POST /v1/rooms/{room_id}/members/{principal_id}/reject
POST /v1/rooms/{room_id}/members/{principal_id}/suspend
POST /v1/rooms/{room_id}/members/{principal_id}/reactivate
POST /v1/rooms/{room_id}/members/{principal_id}/role    — promote / demote
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_current_principal, get_room_boundary
from src.api.principals import PrincipalResponse
from src.governance.identity import check_account_status
from src.governance.room_boundary import RoomBoundary, assert_same_room
from src.models.common import AccountStatus, Role
from src.models.principal import Principal
from src.models.room import Room

router = APIRouter(prefix="/v1/rooms", tags=["rooms"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateRoomRequest(BaseModel):
    name: str


class RoomResponse(BaseModel):
    room_id: str
    name: str
    current_code: str
    created_by: str
    created_at: str

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=str(room.room_id),
            name=room.name,
            current_code=room.current_code,
            created_by=str(room.created_by),
            created_at=room.created_at.isoformat(),
        )


class RotateCodeResponse(BaseModel):
    room_id: str
    current_code: str


class CodeRotationEntry(BaseModel):
    old_code: str
    new_code: str
    rotated_by: str
    rotated_at: str


class CodeHistoryResponse(BaseModel):
    room_id: str
    rotations: list[CodeRotationEntry]


class MembersResponse(BaseModel):
    members: list[PrincipalResponse]
    total: int


class RejectMemberRequest(BaseModel):
    purge: bool = False


class ChangeRoleRequest(BaseModel):
    role: Role


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scope(actor: Principal, room_id: UUID) -> None:
    """Account status first, then the path room must be the caller's room."""
    check_account_status(actor)
    assert_same_room(actor, room_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=RoomResponse)
async def create_room(
    body: CreateRoomRequest,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> RoomResponse:
    room = await boundary.create_room(actor, body.name)
    return RoomResponse.from_room(room)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> RoomResponse:
    return RoomResponse.from_room(await boundary.get_room(actor, room_id))


@router.post("/{room_id}/code/rotate", response_model=RotateCodeResponse)
async def rotate_code(
    room_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> RotateCodeResponse:
    """Issue a new join code; existing members are unaffected."""
    new_code = await boundary.rotate_code(room_id, actor)
    return RotateCodeResponse(room_id=str(room_id), current_code=new_code)


@router.get("/{room_id}/code/history", response_model=CodeHistoryResponse)
async def code_history(
    room_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> CodeHistoryResponse:
    rotations = await boundary.code_history(actor, room_id)
    return CodeHistoryResponse(
        room_id=str(room_id),
        rotations=[
            CodeRotationEntry(
                old_code=r.old_code,
                new_code=r.new_code,
                rotated_by=str(r.rotated_by),
                rotated_at=r.rotated_at.isoformat(),
            )
            for r in rotations
        ],
    )


@router.get("/{room_id}/members", response_model=MembersResponse)
async def list_members(
    room_id: UUID,
    status: AccountStatus | None = None,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> MembersResponse:
    _scope(actor, room_id)
    members = await boundary.list_members(actor, status)
    return MembersResponse(
        members=[PrincipalResponse.from_principal(m) for m in members],
        total=len(members),
    )


@router.post("/{room_id}/members/{principal_id}/approve", response_model=PrincipalResponse)
async def approve_member(
    room_id: UUID,
    principal_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    _scope(actor, room_id)
    return PrincipalResponse.from_principal(await boundary.approve(actor, principal_id))


@router.post("/{room_id}/members/{principal_id}/reject", response_model=PrincipalResponse)
async def reject_member(
    room_id: UUID,
    principal_id: UUID,
    body: RejectMemberRequest | None = None,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    _scope(actor, room_id)
    purge = body.purge if body else False
    return PrincipalResponse.from_principal(
        await boundary.reject(actor, principal_id, purge=purge)
    )


@router.post("/{room_id}/members/{principal_id}/suspend", response_model=PrincipalResponse)
async def suspend_member(
    room_id: UUID,
    principal_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    _scope(actor, room_id)
    return PrincipalResponse.from_principal(await boundary.suspend(actor, principal_id))


@router.post("/{room_id}/members/{principal_id}/reactivate", response_model=PrincipalResponse)
async def reactivate_member(
    room_id: UUID,
    principal_id: UUID,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    _scope(actor, room_id)
    return PrincipalResponse.from_principal(await boundary.reactivate(actor, principal_id))


@router.post("/{room_id}/members/{principal_id}/role", response_model=PrincipalResponse)
async def change_role(
    room_id: UUID,
    principal_id: UUID,
    body: ChangeRoleRequest,
    actor: Principal = Depends(get_current_principal),
    boundary: RoomBoundary = Depends(get_room_boundary),
) -> PrincipalResponse:
    _scope(actor, room_id)
    return PrincipalResponse.from_principal(
        await boundary.promote_role(principal_id, body.role, actor)
    )
