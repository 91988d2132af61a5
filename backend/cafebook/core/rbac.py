"""Role-Based Access Control (RBAC) utilities."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cafebook.core.errors import AuthorizationError, NotFoundError, STATUS_FORBIDDEN
from cafebook.core.security import OwnerSession, decode_session_token
from cafebook.db.session import get_db

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles for RBAC."""

    GUEST = "guest"
    OWNER = "owner"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


OWNER_PRIVILEGED_ROLES = frozenset({Role.OWNER, Role.ADMIN, Role.SUPER_ADMIN})
ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def normalize_role(value: Union[str, Role, None]) -> Role:
    """Interpret a stored role string. Unknown or empty values become guest."""
    if isinstance(value, Role):
        return value
    cleaned = (value or "").strip().lower()
    try:
        return Role(cleaned)
    except ValueError:
        return Role.GUEST


def is_owner_privileged(role: Union[str, Role, None]) -> bool:
    return normalize_role(role) in OWNER_PRIVILEGED_ROLES


def is_admin(role: Union[str, Role, None]) -> bool:
    return normalize_role(role) in ADMIN_ROLES


@dataclass(frozen=True)
class RoleCheck:
    role: Role
    is_owner: bool


def lookup_role(db: Session, user_id: int) -> Role:
    """Read the profile role. Raises NotFoundError when there is no profile."""
    from cafebook.models.user import Profile

    profile = db.get(Profile, user_id)
    if profile is None:
        raise NotFoundError(f"Profile {user_id} not found")
    return normalize_role(profile.role)


def check_owner_access(db: Session, user_id: Optional[int]) -> RoleCheck:
    """Resolve dashboard access for a user. Any lookup failure denies."""
    if user_id is None:
        return RoleCheck(role=Role.GUEST, is_owner=False)
    try:
        role = lookup_role(db, user_id)
    except Exception as e:
        logger.warning(f"Role lookup failed for user {user_id}, denying access: {e}")
        return RoleCheck(role=Role.GUEST, is_owner=False)
    return RoleCheck(role=role, is_owner=role in OWNER_PRIVILEGED_ROLES)


@dataclass(frozen=True)
class CurrentOwner:
    """Authenticated dashboard user.

    Attributes:
        session: The verified client-held session.
        role: Role resolved from the profile at request time.
    """

    session: OwnerSession
    role: Role

    @property
    def user_id(self) -> int:
        return self.session.user_id

    @property
    def username(self) -> str:
        return self.session.username

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def _token_from_request(request: Request) -> Optional[str]:
    """Bearer header first, then the owner_session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get("owner_session") or None


async def get_owner_session(request: Request) -> OwnerSession:
    token = _token_from_request(request)
    session = decode_session_token(token) if token else None
    if session is None:
        raise AuthorizationError("Login required")
    return session


async def require_owner(
    session: Annotated[OwnerSession, Depends(get_owner_session)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentOwner:
    """Valid session and an owner-privileged role."""
    check = check_owner_access(db, session.user_id)
    if not check.is_owner:
        raise AuthorizationError("Owner access required", status_code=STATUS_FORBIDDEN)
    return CurrentOwner(session=session, role=check.role)


async def get_optional_owner(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> Optional[CurrentOwner]:
    """The dashboard user behind the request, or None for anonymous callers."""
    token = _token_from_request(request)
    session = decode_session_token(token) if token else None
    if session is None:
        return None
    check = check_owner_access(db, session.user_id)
    if not check.is_owner:
        return None
    return CurrentOwner(session=session, role=check.role)


async def require_admin(
    owner: Annotated[CurrentOwner, Depends(require_owner)],
) -> CurrentOwner:
    if not owner.is_admin:
        raise AuthorizationError("Admin access required", status_code=STATUS_FORBIDDEN)
    return owner


def can_manage_cafe(owner: CurrentOwner, cafe) -> bool:
    return owner.is_admin or cafe.owner_id == owner.user_id


def ensure_cafe_access(db: Session, owner: CurrentOwner, cafe_id: int):
    """Load a café the caller may manage. Admins may manage any café."""
    from cafebook.models.cafe import Cafe

    cafe = db.get(Cafe, cafe_id)
    if cafe is None:
        raise NotFoundError("Cafe not found")
    if not can_manage_cafe(owner, cafe):
        raise AuthorizationError("You do not manage this cafe", status_code=STATUS_FORBIDDEN)
    return cafe


RequireOwner = Annotated[CurrentOwner, Depends(require_owner)]
RequireAdmin = Annotated[CurrentOwner, Depends(require_admin)]
OptionalOwner = Annotated[Optional[CurrentOwner], Depends(get_optional_owner)]
