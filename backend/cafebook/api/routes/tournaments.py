"""Public tournament listing and player registration."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request

from cafebook.core.rate_limit import limiter
from cafebook.db.session import DbSession
from cafebook.schemas.tournament import RegistrationCreate, RegistrationResponse, TournamentResponse
from cafebook.services.tournament_service import TournamentService

router = APIRouter()


@router.get("", response_model=List[TournamentResponse])
def list_tournaments(
    db: DbSession,
    status: Optional[str] = Query(None),
    cafe_id: Optional[int] = Query(None, alias="cafeId"),
):
    return TournamentService(db).list_tournaments(status=status, cafe_id=cafe_id)


@router.get("/registrations", response_model=List[RegistrationResponse])
def list_registrations(db: DbSession, user_id: Optional[int] = Query(None, alias="userId")):
    return TournamentService(db).list_registrations(user_id)


@router.get("/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, db: DbSession):
    return TournamentService(db).get_tournament(tournament_id)


@router.post("/{tournament_id}/register", response_model=RegistrationResponse, status_code=201)
@limiter.limit("10/minute")
def register_player(request: Request, tournament_id: int, body: RegistrationCreate, db: DbSession):
    """Free tournaments confirm immediately; paid ones stay pending until the fee is settled."""
    return TournamentService(db).register(
        tournament_id,
        user_id=body.user_id,
        player_name=body.player_name,
        player_email=body.player_email,
        player_phone=body.player_phone,
        team_name=body.team_name,
    )
