"""Tournament models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafebook.db.base import Base, TimestampMixin


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_STATUSES = (TournamentStatus.UPCOMING.value, TournamentStatus.ONGOING.value)


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Tournament(Base, TimestampMixin):
    """A gaming tournament, optionally hosted at a café."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    cafe_id: Mapped[Optional[int]] = mapped_column(ForeignKey("cafes.id", ondelete="SET NULL"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rules: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    tournament_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    tournament_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TournamentStatus.UPCOMING.value, index=True)

    prize_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    prize_currency: Mapped[str] = mapped_column(String(10), nullable=False, default="₹")
    registration_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    registration_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    registrations: Mapped[list["TournamentRegistration"]] = relationship(
        "TournamentRegistration", back_populates="tournament", cascade="all, delete-orphan"
    )

    @property
    def is_full(self) -> bool:
        return self.max_participants is not None and self.current_participants >= self.max_participants


class TournamentRegistration(Base):
    """One player's entry. A profile registers at most once per tournament."""

    __tablename__ = "tournament_registrations"
    __table_args__ = (
        UniqueConstraint("tournament_id", "user_id", name="uq_tournament_registrations_player"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    player_name: Mapped[str] = mapped_column(String(200), nullable=False)
    player_email: Mapped[str] = mapped_column(String(255), nullable=False)
    player_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    team_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    registration_status: Mapped[str] = mapped_column(String(20), nullable=False, default=RegistrationStatus.PENDING.value)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="registrations")
