"""User profile model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from cafebook.db.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    """Account used for dashboard login and role lookup.

    ``role`` is kept as the raw stored string. It is only ever interpreted
    through ``cafebook.core.rbac.normalize_role``.
    """

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(50), default="guest", nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
