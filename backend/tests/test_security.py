"""Tests for password hashing, owner sessions and role checks."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy.orm import Session

from cafebook.core.config import settings
from cafebook.core.rbac import Role, check_owner_access, is_admin, is_owner_privileged, normalize_role
from cafebook.core.security import (
    OwnerSession,
    create_session_token,
    decode_session_token,
    get_password_hash,
    verify_password,
)
from cafebook.models import Profile


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed) is True
        assert verify_password("hunter23", hashed) is False

    def test_malformed_hash_is_rejected(self):
        assert verify_password("hunter22", "not-a-bcrypt-hash") is False


class TestOwnerSession:
    def test_expires_exactly_after_lifetime(self):
        issued = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
        session = OwnerSession(user_id=1, username="owner", issued_at=issued)

        assert session.expires_at == issued + timedelta(hours=24)
        assert session.is_expired(issued + timedelta(hours=23, minutes=59)) is False
        assert session.is_expired(issued + timedelta(hours=24)) is True

    def test_token_round_trip(self):
        issued = datetime.now(timezone.utc).replace(microsecond=0)
        token = create_session_token(OwnerSession(user_id=7, username="owner", issued_at=issued))

        session = decode_session_token(token)

        assert session == OwnerSession(user_id=7, username="owner", issued_at=issued)

    def test_expired_token_is_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=25)
        token = create_session_token(OwnerSession(user_id=7, username="owner", issued_at=issued))
        assert decode_session_token(token) is None

    def test_tampered_token_is_rejected(self):
        token = jwt.encode(
            {"sub": "7", "iat": datetime.now(timezone.utc), "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "some-other-key",
            algorithm=settings.algorithm,
        )
        assert decode_session_token(token) is None
        assert decode_session_token("garbage") is None


class TestRoles:
    @pytest.mark.parametrize("value,expected", [
        ("owner", Role.OWNER),
        ("  Admin ", Role.ADMIN),
        ("SUPER_ADMIN", Role.SUPER_ADMIN),
        ("manager", Role.GUEST),
        (None, Role.GUEST),
        ("", Role.GUEST),
    ])
    def test_normalize_role(self, value, expected):
        assert normalize_role(value) == expected

    def test_privilege_sets(self):
        assert all(is_owner_privileged(r) for r in ("owner", "admin", "super_admin"))
        assert not is_owner_privileged("guest")
        assert is_admin("super_admin") and is_admin("admin")
        assert not is_admin("owner")

    def test_check_owner_access(self, db_session: Session, owner: Profile, guest: Profile):
        assert check_owner_access(db_session, owner.id).is_owner is True
        assert check_owner_access(db_session, guest.id).is_owner is False

    def test_lookup_failure_denies(self, db_session: Session):
        check = check_owner_access(db_session, 424242)
        assert check.is_owner is False
        assert check.role == Role.GUEST
        assert check_owner_access(db_session, None).is_owner is False
