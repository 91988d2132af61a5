"""Tournaments and player registration.

``current_participants`` only moves through a guarded UPDATE that checks
the cap, so concurrent registrations can never overfill a tournament.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.models.tournament import (
    OPEN_STATUSES,
    RegistrationStatus,
    Tournament,
    TournamentRegistration,
    TournamentStatus,
)
from cafebook.models.user import Profile

logger = logging.getLogger(__name__)

REQUIRED_TOURNAMENT_FIELDS = ("name", "game", "tournament_date", "tournament_time")
TOURNAMENT_FIELDS = REQUIRED_TOURNAMENT_FIELDS + (
    "cafe_id",
    "icon",
    "description",
    "rules",
    "color",
    "location",
    "status",
    "prize_amount",
    "prize_currency",
    "registration_fee",
    "registration_deadline",
    "max_participants",
)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _validate_status(status: str) -> str:
    try:
        return TournamentStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown tournament status: {status}")


class TournamentService:
    def __init__(self, db: Session):
        self.db = db

    def list_tournaments(self, status: Optional[str] = None, cafe_id: Optional[int] = None) -> List[Tournament]:
        query = self.db.query(Tournament)
        if status:
            query = query.filter(Tournament.status == _validate_status(status))
        if cafe_id is not None:
            query = query.filter(Tournament.cafe_id == cafe_id)
        return query.order_by(Tournament.tournament_date, Tournament.tournament_time).all()

    def get_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.db.get(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament not found")
        return tournament

    def create_tournament(self, data: Dict[str, Any]) -> Tournament:
        """Caller commits."""
        missing = [name for name in REQUIRED_TOURNAMENT_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(REQUIRED_TOURNAMENT_FIELDS)}")

        values = {k: v for k, v in data.items() if k in TOURNAMENT_FIELDS and v is not None}
        if "status" in values:
            values["status"] = _validate_status(values["status"])
        if Decimal(str(values.get("registration_fee", 0))) < 0:
            raise ValidationError("registration_fee must not be negative")
        if values.get("max_participants") is not None and values["max_participants"] < 1:
            raise ValidationError("max_participants must be at least 1")

        tournament = Tournament(current_participants=0, **values)
        self.db.add(tournament)
        self.db.flush()
        logger.info(f"Tournament {tournament.id} '{tournament.name}' created for {tournament.tournament_date}")
        return tournament

    def set_status(self, tournament: Tournament, status: str) -> Tournament:
        tournament.status = _validate_status(status)
        self.db.flush()
        return tournament

    def register(
        self,
        tournament_id: Optional[int],
        user_id: Optional[int],
        player_name: Optional[str],
        player_email: Optional[str],
        player_phone: Optional[str] = None,
        team_name: Optional[str] = None,
    ) -> TournamentRegistration:
        if not tournament_id or not user_id or not (player_name or "").strip() or not (player_email or "").strip():
            raise ValidationError("Missing required fields: tournament_id, user_id, player_name, player_email")

        tournament = self.get_tournament(tournament_id)
        if tournament.status not in OPEN_STATUSES:
            raise ValidationError("Tournament is not open for registration")
        deadline = _as_aware(tournament.registration_deadline)
        if deadline is not None and deadline < datetime.now(timezone.utc):
            raise ValidationError("Registration deadline has passed")
        if self.db.get(Profile, user_id) is None:
            raise NotFoundError("User not found")

        existing = (
            self.db.query(TournamentRegistration)
            .filter(TournamentRegistration.tournament_id == tournament.id, TournamentRegistration.user_id == user_id)
            .first()
        )
        if existing is not None:
            raise ConflictError("Already registered for this tournament")

        fee = Decimal(tournament.registration_fee or 0)
        now = datetime.now(timezone.utc)
        registration = TournamentRegistration(
            tournament_id=tournament.id,
            user_id=user_id,
            player_name=player_name.strip(),
            player_email=player_email.strip(),
            player_phone=player_phone,
            team_name=team_name,
            registration_status=(RegistrationStatus.PENDING if fee > 0 else RegistrationStatus.CONFIRMED).value,
            payment_status="pending" if fee > 0 else "paid",
            payment_amount=fee,
            registered_at=now,
            confirmed_at=None if fee > 0 else now,
        )

        try:
            stmt = (
                update(Tournament)
                .where(Tournament.id == tournament.id)
                .where(or_(
                    Tournament.max_participants.is_(None),
                    Tournament.current_participants < Tournament.max_participants,
                ))
                .values(current_participants=Tournament.current_participants + 1)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).rowcount != 1:
                raise ConflictError("Tournament is full")
            self.db.add(registration)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Already registered for this tournament")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(registration)
        logger.info(f"User {user_id} registered for tournament {tournament.id} ({registration.registration_status})")
        return registration

    def list_registrations(self, user_id: Optional[int]) -> List[TournamentRegistration]:
        if not user_id:
            raise ValidationError("user_id parameter is required")
        return (
            self.db.query(TournamentRegistration)
            .filter(TournamentRegistration.user_id == user_id)
            .order_by(TournamentRegistration.registered_at.desc())
            .all()
        )
