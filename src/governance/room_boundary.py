"""Room membership boundary — tenant isolation and membership administration.

Every task read/write is confined to the caller's room via
``assert_same_room`` before it reaches the lifecycle engine. Membership
mutations (join, signup, approval, role changes) and room code rotation
live here, never in the lifecycle engine.

Role and account status are independent axes: promote_role only touches
``role``, the approve/reject/suspend/reactivate family only touches
``account_status``.
"""

import re
import secrets
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.governance.errors import (
    CrossTenantAccess,
    Forbidden,
    InvalidCode,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from src.governance.identity import ADMIN_ONLY, REVIEWER_ROLES, ALL_ROLES, authorize
from src.models.common import AccountStatus, Role, new_uuid7
from src.models.principal import (
    ACCOUNT_STATUS_ACTIONS,
    EMAIL_PATTERN,
    EMAIL_MAX_LENGTH,
    USERNAME_PATTERN,
    VALID_ROLE_CHANGES,
    Principal,
)
from src.models.room import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    ROOM_CODE_PATTERN,
    ROOM_NAME_MAX_LENGTH,
    CodeRotation,
    Room,
)
from src.repositories.principals import PrincipalRepository
from src.repositories.rooms import CodeRotationRepository, RoomRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Roles a principal may pick at signup; approver is reached by promotion only.
SIGNUP_ROLES = frozenset({Role.USER, Role.ADMIN})


def generate_room_code() -> str:
    """Random 6-character code of uppercase letters and digits."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def assert_same_room(principal: Principal, resource_room_id: UUID) -> None:
    """Raise CrossTenantAccess unless the resource lives in the principal's room."""
    if principal.room_id is None or principal.room_id != resource_room_id:
        raise CrossTenantAccess(
            "This resource belongs to a different room than your membership."
        )


class RoomBoundary:
    """Tenant scope checks plus room and membership administration."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        rooms: RoomRepository | None = None,
        rotations: CodeRotationRepository | None = None,
        principals: PrincipalRepository | None = None,
        max_code_attempts: int = 10,
        code_generator: Callable[[], str] = generate_room_code,
    ) -> None:
        self._session = session
        self._rooms = rooms or RoomRepository(session)
        self._rotations = rotations or CodeRotationRepository(session)
        self._principals = principals or PrincipalRepository(session)
        self._max_code_attempts = max_code_attempts
        self._code_generator = code_generator

    # ----- Tenant scope -----

    def assert_same_room(self, principal: Principal, resource_room_id: UUID) -> None:
        assert_same_room(principal, resource_room_id)

    # ----- Room codes -----

    async def join_room(self, code: str) -> UUID:
        """Resolve a room code to a room id (exact match after uppercasing)."""
        normalized = normalize_room_code(code or "")
        if not re.fullmatch(ROOM_CODE_PATTERN, normalized):
            raise InvalidCode("Room code must be exactly 6 uppercase letters or digits.")
        row = await self._rooms.get_by_code(normalized)
        if row is None:
            raise InvalidCode("Invalid organization code.")
        return row.room_id

    async def _write_with_fresh_code(self, write: Callable[[str], Awaitable[T]]) -> T:
        """Run ``write(code)`` in a SAVEPOINT with a code no room is using.

        A candidate can pass ``code_exists`` and still lose the unique index
        to a concurrent writer; that attempt's SAVEPOINT is rolled back and
        the next attempt draws a fresh code.

        Raises:
            ValidationError: if every attempt collided.
        """
        for _ in range(self._max_code_attempts):
            candidate = self._code_generator()
            if await self._rooms.code_exists(candidate):
                continue
            try:
                async with self._session.begin_nested():
                    return await write(candidate)
            except IntegrityError:
                logger.warning("room_code_collision", code=candidate)
        raise ValidationError(
            f"Could not generate a unique room code after {self._max_code_attempts} attempts."
        )

    async def rotate_code(self, room_id: UUID, actor: Principal) -> str:
        """Replace the room code, recording the rotation in history.

        The history append and the code update share one SAVEPOINT: either
        both are visible afterwards or neither is.
        """
        authorize(actor, ADMIN_ONLY)
        assert_same_room(actor, room_id)
        room = await self._get_room_row(room_id)
        old_code = room.current_code

        async def append_and_update(new_code: str) -> str:
            await self._rotations.append(
                rotation_id=new_uuid7(),
                room_id=room_id,
                old_code=old_code,
                new_code=new_code,
                rotated_by=actor.principal_id,
            )
            updated = await self._rooms.update_code(room_id, new_code)
            if updated is None:
                raise NotFound.for_entity("Room", room_id)
            return new_code

        new_code = await self._write_with_fresh_code(append_and_update)

        logger.info(
            "room_code_rotated",
            room_id=str(room_id),
            rotated_by=str(actor.principal_id),
        )
        return new_code

    async def code_history(self, actor: Principal, room_id: UUID) -> list[CodeRotation]:
        authorize(actor, ADMIN_ONLY)
        assert_same_room(actor, room_id)
        rows = await self._rotations.list_by_room(room_id)
        return [CodeRotation.model_validate(r) for r in rows]

    # ----- Rooms -----

    async def create_room(self, actor: Principal, name: str) -> Room:
        """An approved admin without a room creates one and becomes its admin."""
        authorize(actor, ADMIN_ONLY)
        if actor.room_id is not None:
            raise ValidationError("You already administer a room.")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Room name is required.")
        if len(name) > ROOM_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Room name must be at most {ROOM_NAME_MAX_LENGTH} characters."
            )

        async def insert_room(code: str):
            return await self._rooms.create(
                room_id=new_uuid7(), name=name, current_code=code,
                created_by=actor.principal_id,
            )

        row = await self._write_with_fresh_code(insert_room)
        await self._principals.set_room(actor.principal_id, row.room_id)
        logger.info("room_created", room_id=str(row.room_id), created_by=str(actor.principal_id))
        return Room.model_validate(row)

    async def get_room(self, actor: Principal, room_id: UUID) -> Room:
        authorize(actor, ALL_ROLES)
        assert_same_room(actor, room_id)
        return Room.model_validate(await self._get_room_row(room_id))

    # ----- Signup -----

    async def register(
        self,
        *,
        principal_id: UUID,
        username: str,
        email: str,
        role: Role,
        room_code: str | None = None,
    ) -> Principal:
        """Create the principal record for a freshly authenticated identity.

        Admins are auto-approved and start without a room. Users must join
        with a valid room code and wait for approval.
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()

        if not re.fullmatch(USERNAME_PATTERN, username):
            raise ValidationError(
                "Username must be 3-50 characters: letters, numbers, - and _ only."
            )
        if len(email) > EMAIL_MAX_LENGTH or not re.fullmatch(EMAIL_PATTERN, email):
            raise ValidationError("Please enter a valid email address.")
        if role not in SIGNUP_ROLES:
            raise ValidationError("Signup role must be 'user' or 'admin'.")
        if await self._principals.get(principal_id) is not None:
            raise ValidationError("A profile already exists for this account.")
        if await self._principals.get_by_email(email) is not None:
            raise ValidationError("This email is already registered.")

        room_id: UUID | None = None
        if role == Role.USER:
            if not room_code:
                raise ValidationError("A room code is required to join as a user.")
            room_id = await self.join_room(room_code)

        status = AccountStatus.APPROVED if role == Role.ADMIN else AccountStatus.PENDING
        row = await self._principals.create(
            principal_id=principal_id, username=username, email=email,
            role=role.value, account_status=status.value, room_id=room_id,
        )
        logger.info(
            "principal_registered",
            principal_id=str(principal_id),
            role=role.value,
            account_status=status.value,
        )
        return Principal.model_validate(row)

    # ----- Members -----

    async def list_members(
        self, actor: Principal, account_status: AccountStatus | None = None
    ) -> list[Principal]:
        authorize(actor, REVIEWER_ROLES)
        if actor.room_id is None:
            raise CrossTenantAccess("You are not a member of any room.")
        rows = await self._principals.list_by_room(
            actor.room_id, account_status.value if account_status else None
        )
        return [Principal.model_validate(r) for r in rows]

    async def promote_role(
        self, target_id: UUID, new_role: Role, actor: Principal
    ) -> Principal:
        """Change a member's role (user <-> approver). Admin only."""
        authorize(actor, ADMIN_ONLY)
        target = await self._load_member(actor, target_id)
        if target.account_status != AccountStatus.APPROVED:
            raise ValidationError("Only approved members can change role.")
        if new_role == target.role:
            raise ValidationError(f"Member already has role '{new_role.value}'.")
        if new_role not in VALID_ROLE_CHANGES.get(target.role, frozenset()):
            raise ValidationError(
                f"Role change from '{target.role.value}' to '{new_role.value}' is not permitted."
            )

        row = await self._principals.update_role(
            target_id, new_role.value, actor.principal_id
        )
        logger.info(
            "role_changed",
            principal_id=str(target_id),
            old_role=target.role.value,
            new_role=new_role.value,
            changed_by=str(actor.principal_id),
        )
        return Principal.model_validate(row)

    async def approve(self, actor: Principal, target_id: UUID) -> Principal:
        return await self._change_account_status(actor, target_id, "approve")

    async def reject(
        self, actor: Principal, target_id: UUID, *, purge: bool = False
    ) -> Principal:
        """Reject a pending signup; ``purge`` removes the pending record instead."""
        if not purge:
            return await self._change_account_status(actor, target_id, "reject")

        authorize(actor, ADMIN_ONLY)
        target = await self._load_member(actor, target_id)
        if target.account_status != AccountStatus.PENDING:
            raise InvalidTransition(
                f"Only pending signups can be removed (account is {target.account_status.value})."
            )
        await self._principals.delete_pending(target_id)
        logger.info("principal_purged", principal_id=str(target_id), purged_by=str(actor.principal_id))
        return target.model_copy(update={"account_status": AccountStatus.REJECTED})

    async def suspend(self, actor: Principal, target_id: UUID) -> Principal:
        return await self._change_account_status(actor, target_id, "suspend")

    async def reactivate(self, actor: Principal, target_id: UUID) -> Principal:
        return await self._change_account_status(actor, target_id, "reactivate")

    # ----- Internals -----

    async def _get_room_row(self, room_id: UUID):
        row = await self._rooms.get(room_id)
        if row is None:
            raise NotFound.for_entity("Room", room_id)
        return row

    async def _load_member(self, actor: Principal, target_id: UUID) -> Principal:
        row = await self._principals.get(target_id)
        if row is None:
            raise NotFound.for_entity("Principal", target_id)
        target = Principal.model_validate(row)
        if actor.room_id is None:
            raise CrossTenantAccess("You are not a member of any room.")
        if target.room_id != actor.room_id:
            raise CrossTenantAccess("This member belongs to a different room.")
        return target

    async def _change_account_status(
        self, actor: Principal, target_id: UUID, action: str
    ) -> Principal:
        authorize(actor, ADMIN_ONLY)
        if target_id == actor.principal_id:
            raise Forbidden("You cannot change your own account status.")
        target = await self._load_member(actor, target_id)
        allowed_from, new_status = ACCOUNT_STATUS_ACTIONS[action]
        if target.account_status not in allowed_from:
            raise InvalidTransition(
                f"Cannot {action} a member whose account is "
                f"{target.account_status.value}."
            )

        row = await self._principals.update_status(target_id, new_status.value)
        logger.info(
            "account_status_changed",
            principal_id=str(target_id),
            old_status=target.account_status.value,
            new_status=new_status.value,
            changed_by=str(actor.principal_id),
        )
        return Principal.model_validate(row)
