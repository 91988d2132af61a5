"""Public café browsing: listings, ticket options, live availability."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query, Request

from cafebook.core.errors import NotFoundError, ValidationError
from cafebook.core.rate_limit import limiter
from cafebook.db.session import DbSession
from cafebook.models.cafe import Cafe
from cafebook.schemas.cafe import CafeResponse
from cafebook.services import pricing_service
from cafebook.services.availability_service import (
    build_time_slots,
    compute_availability,
    minutes_to_time,
    time_to_minutes,
)

router = APIRouter()


def _get_public_cafe(db, cafe_ref: str) -> Cafe:
    query = db.query(Cafe).filter(Cafe.is_active.is_(True))
    if cafe_ref.isdigit():
        cafe = query.filter(Cafe.id == int(cafe_ref)).first()
    else:
        cafe = query.filter(Cafe.slug == cafe_ref).first()
    if cafe is None:
        raise NotFoundError("Cafe not found")
    return cafe


@router.get("/cafes", response_model=List[CafeResponse])
def list_cafes(
    db: DbSession,
    city: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
):
    query = db.query(Cafe).filter(Cafe.is_active.is_(True))
    if city:
        query = query.filter(Cafe.city.ilike(city))
    if featured is not None:
        query = query.filter(Cafe.is_featured.is_(featured))
    return query.order_by(Cafe.is_featured.desc(), Cafe.name).all()


@router.get("/cafes/{cafe_ref}", response_model=CafeResponse)
def get_cafe(cafe_ref: str, db: DbSession):
    """Look up a café by numeric id or slug."""
    return _get_public_cafe(db, cafe_ref)


@router.get("/cafes/{cafe_ref}/tickets")
def get_tickets(cafe_ref: str, db: DbSession, duration: int = Query(60)):
    cafe = _get_public_cafe(db, cafe_ref)
    pricing_service.validate_duration(duration)
    tickets = pricing_service.list_cafe_tickets(db, cafe, duration)
    return {
        "cafeId": cafe.id,
        "durationMinutes": duration,
        "tickets": {console: [t.to_dict() for t in options] for console, options in tickets.items()},
    }


@router.get("/cafes/{cafe_ref}/availability")
@limiter.limit("60/minute")
def get_availability(
    request: Request,
    cafe_ref: str,
    db: DbSession,
    booking_date: date = Query(..., alias="date"),
    start_time: str = Query(..., alias="time"),
    duration: int = Query(60),
):
    cafe = _get_public_cafe(db, cafe_ref)
    if duration <= 0:
        raise ValidationError("duration must be positive")
    availability = compute_availability(db, cafe.id, booking_date, start_time, duration)
    return {
        "cafeId": cafe.id,
        "date": booking_date.isoformat(),
        "startTime": minutes_to_time(time_to_minutes(start_time)),
        "durationMinutes": duration,
        "consoles": {
            console.value: entry.to_dict()
            for console, entry in availability.items()
            if entry.total > 0
        },
    }


@router.get("/time-slots")
def list_time_slots():
    return build_time_slots()
