"""Security utilities: password hashing and owner dashboard sessions."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from jwt.exceptions import PyJWTError

from cafebook.core.config import settings

logger = logging.getLogger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hash.

    Uses bcrypt's built-in timing-safe comparison.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")


@dataclass(frozen=True)
class OwnerSession:
    """A dashboard login, held by the client and re-presented on each request.

    Expiry is a pure function of ``issued_at`` so it can be checked without
    any storage behind it.
    """

    user_id: int
    username: str
    issued_at: datetime

    @property
    def lifetime(self) -> timedelta:
        return timedelta(hours=settings.owner_session_hours)

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.lifetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - self.issued_at >= self.lifetime


def create_session_token(session: OwnerSession) -> str:
    """Sign an owner session into a JWT."""
    to_encode: dict[str, Any] = {
        "sub": str(session.user_id),
        "username": session.username,
        "iat": session.issued_at,
        "exp": session.expires_at,
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_session_token(token: str) -> OwnerSession | None:
    """Decode a session JWT. Returns None for anything invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None

    try:
        session = OwnerSession(
            user_id=int(payload["sub"]),
            username=payload.get("username", ""),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        return None

    if session.is_expired():
        return None
    return session
