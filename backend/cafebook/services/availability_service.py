"""Console availability for a café, date and time window.

Every call reads bookings fresh from the database. A booking occupies
``[start, start + its own duration)``, so a 60 minute booking blocks both
30 minute windows it covers.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, time
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session, selectinload

from cafebook.core.config import settings
from cafebook.core.errors import CapacityError, NotFoundError, ValidationError
from cafebook.models.booking import Booking, BookingStatus
from cafebook.models.cafe import Cafe, ConsoleType

logger = logging.getLogger(__name__)

_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(am|pm)$")
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

MINUTES_PER_DAY = 24 * 60


@dataclass
class ConsoleAvailability:
    total: int
    booked: int = 0
    next_available_at: Optional[str] = None

    @property
    def available(self) -> int:
        return max(0, self.total - self.booked)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "booked": self.booked,
            "available": self.available,
            "nextAvailableAt": self.next_available_at,
        }


def time_to_minutes(value: Union[str, time]) -> int:
    """Minutes since midnight for a ``time`` or a "17:00" / "5:00 pm" string."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    text = (value or "").strip().lower()
    match = _TIME_12H.match(text)
    if match:
        hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3)
        if not 1 <= hours <= 12 or minutes > 59:
            raise ValidationError(f"Invalid time: {value}")
        if period == "pm" and hours != 12:
            hours += 12
        elif period == "am" and hours == 12:
            hours = 0
        return hours * 60 + minutes

    match = _TIME_24H.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise ValidationError(f"Invalid time: {value}")
        return hours * 60 + minutes

    raise ValidationError(f"Invalid time: {value}")


def minutes_to_time(total_minutes: int) -> str:
    """Display form, e.g. 1050 -> "5:30 pm". Wraps past midnight."""
    hours, mins = divmod(total_minutes % MINUTES_PER_DAY, 60)
    period = "pm" if hours >= 12 else "am"
    display = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f"{display}:{mins:02d} {period}"


def parse_time_slot(value: Union[str, time]) -> time:
    minutes = time_to_minutes(value)
    return time(minutes // 60, minutes % 60)


def slots_overlap(start_a: int, duration_a: int, start_b: int, duration_b: int) -> bool:
    return start_a < start_b + duration_b and start_b < start_a + duration_a


def _resolve_console(value: Union[str, ConsoleType]) -> ConsoleType:
    try:
        return ConsoleType(value)
    except ValueError:
        raise ValidationError(f"Unknown console type: {value}")


def _active_bookings(db: Session, cafe_id: int, booking_date: date) -> List[Booking]:
    return (
        db.query(Booking)
        .options(selectinload(Booking.items))
        .filter(
            Booking.cafe_id == cafe_id,
            Booking.booking_date == booking_date,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .all()
    )


def compute_availability(
    db: Session,
    cafe_id: int,
    booking_date: date,
    start_time: Union[str, time],
    duration_minutes: int,
    consoles: Optional[Iterable[ConsoleType]] = None,
) -> Dict[ConsoleType, ConsoleAvailability]:
    """Remaining capacity per console type for the requested window."""
    cafe = db.get(Cafe, cafe_id)
    if cafe is None:
        raise NotFoundError("Cafe not found")

    start = time_to_minutes(start_time)
    wanted = list(consoles) if consoles is not None else list(ConsoleType)
    result = {c: ConsoleAvailability(total=cafe.console_count(c)) for c in wanted}

    for booking in _active_bookings(db, cafe_id, booking_date):
        if not slots_overlap(start, duration_minutes, booking.start_minutes, booking.duration_minutes):
            continue
        for item in booking.items:
            try:
                console = ConsoleType(item.console_type)
            except ValueError:
                logger.warning(f"Booking {booking.id} has unknown console {item.console_type!r}")
                continue
            entry = result.get(console)
            if entry is None:
                continue
            entry.booked += item.quantity or 0
            end_label = minutes_to_time(booking.end_minutes)
            if entry.next_available_at is None or booking.end_minutes < time_to_minutes(entry.next_available_at):
                entry.next_available_at = end_label

    return result


def aggregate_selections(selections: Iterable[Tuple[Union[str, ConsoleType], int]]) -> Dict[ConsoleType, int]:
    """Sum requested quantity per console, ignoring zero lines."""
    requested: Dict[ConsoleType, int] = {}
    for console, quantity in selections:
        if not console or not quantity or quantity <= 0:
            continue
        kind = _resolve_console(console)
        requested[kind] = requested.get(kind, 0) + quantity
    return requested


def check_capacity(
    db: Session,
    cafe_id: int,
    booking_date: date,
    start_time: Union[str, time],
    duration_minutes: int,
    selections: Iterable[Tuple[Union[str, ConsoleType], int]],
) -> Dict[ConsoleType, ConsoleAvailability]:
    """Reject, never clamp, a selection that exceeds what is left.

    Asking for exactly the remaining quantity passes.
    """
    requested = aggregate_selections(selections)
    if not requested:
        raise ValidationError("No tickets selected.")

    availability = compute_availability(
        db, cafe_id, booking_date, start_time, duration_minutes, consoles=requested.keys()
    )
    for console, quantity in requested.items():
        remaining = availability[console].available
        if quantity > remaining:
            if remaining > 0:
                message = (
                    f"Only {remaining} {console.label} setup(s) available for this time slot. "
                    "Another booking overlaps with your selected time."
                )
            else:
                message = f"No {console.label} setups available. All are booked for overlapping time slots."
            raise CapacityError(message, console=console.value)
    return availability


def build_time_slots() -> List[dict]:
    """Bookable start times from opening to closing at a fixed interval."""
    slots = []
    for hour in range(settings.open_hour, settings.close_hour):
        for minutes in range(0, 60, settings.slot_interval_minutes):
            slots.append({
                "label": minutes_to_time(hour * 60 + minutes),
                "hour": hour,
                "minutes": minutes,
                "isPeak": settings.peak_start <= hour < settings.peak_end,
            })
    return slots
