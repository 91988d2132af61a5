"""Tournament schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cafebook.models.tournament import TournamentStatus


class TournamentCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    game: Optional[str] = Field(None, max_length=100)
    tournament_date: Optional[date] = None
    tournament_time: Optional[time] = None
    cafe_id: Optional[int] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    status: Optional[TournamentStatus] = None
    prize_amount: Optional[Decimal] = Field(None, ge=0)
    prize_currency: Optional[str] = Field(None, max_length=10)
    registration_fee: Optional[Decimal] = Field(None, ge=0)
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=1)


class TournamentStatusUpdate(BaseModel):
    status: TournamentStatus


class TournamentResponse(BaseModel):
    id: int
    cafe_id: Optional[int] = None
    name: str
    game: str
    icon: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    tournament_date: date
    tournament_time: time
    status: str
    prize_amount: float
    prize_currency: str
    registration_fee: float
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = None
    current_participants: int

    model_config = ConfigDict(from_attributes=True)


class RegistrationCreate(BaseModel):
    user_id: Optional[int] = None
    player_name: Optional[str] = Field(None, max_length=200)
    player_email: Optional[str] = Field(None, max_length=255)
    player_phone: Optional[str] = Field(None, max_length=50)
    team_name: Optional[str] = Field(None, max_length=200)


class RegistrationResponse(BaseModel):
    id: int
    tournament_id: int
    user_id: int
    player_name: str
    player_email: str
    player_phone: Optional[str] = None
    team_name: Optional[str] = None
    registration_status: str
    payment_status: str
    payment_amount: float
    registered_at: datetime
    confirmed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
