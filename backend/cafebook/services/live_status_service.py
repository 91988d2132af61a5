"""What is happening on the floor right now."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session, selectinload

from cafebook.models.booking import Booking, BookingStatus
from cafebook.models.cafe import Cafe, ConsoleType
from cafebook.models.membership import Subscription
from cafebook.services.availability_service import minutes_to_time

logger = logging.getLogger(__name__)


def _running_bookings(db: Session, cafe_id: int, day) -> List[Booking]:
    return (
        db.query(Booking)
        .options(selectinload(Booking.items), selectinload(Booking.orders))
        .filter(
            Booking.cafe_id == cafe_id,
            Booking.booking_date == day,
            Booking.status == BookingStatus.IN_PROGRESS.value,
        )
        .order_by(Booking.start_time)
        .all()
    )


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def live_status(db: Session, cafe: Cafe, now: datetime) -> Dict[str, Any]:
    """Consoles in use, running sessions and active membership subscriptions.

    ``now`` is café-local wall clock time; booking start times are stored
    the same way.
    """
    bookings = _running_bookings(db, cafe.id, now.date())
    now_minutes = now.hour * 60 + now.minute

    in_use: Dict[str, int] = {}
    sessions = []
    for booking in bookings:
        for item in booking.items:
            in_use[item.console_type] = in_use.get(item.console_type, 0) + item.quantity
        remaining = booking.end_minutes - now_minutes
        sessions.append({
            "bookingId": booking.id,
            "customerName": booking.customer_name,
            "source": booking.source,
            "startTime": minutes_to_time(booking.start_minutes),
            "endTime": minutes_to_time(booking.end_minutes),
            "minutesRemaining": max(remaining, 0),
            "overdue": remaining < 0,
            "consoles": [{"console": i.console_type, "quantity": i.quantity} for i in booking.items],
            "ordersTotal": float(sum((Decimal(o.total_price) for o in booking.orders), Decimal("0.00"))),
            "totalAmount": float(booking.total_amount),
        })

    consoles = []
    for console in ConsoleType:
        total = cafe.console_count(console)
        if total <= 0:
            continue
        used = in_use.get(console.value, 0)
        consoles.append({
            "console": console.value,
            "label": console.label,
            "total": total,
            "inUse": used,
            "free": max(total - used, 0),
        })

    utc_now = datetime.now(timezone.utc)
    subscriptions = (
        db.query(Subscription)
        .filter(Subscription.cafe_id == cafe.id, Subscription.status == "active")
        .order_by(Subscription.customer_name)
        .all()
    )
    active_subscriptions = [
        {
            "id": sub.id,
            "customerName": sub.customer_name,
            "consoleType": sub.plan.console_type if sub.plan else None,
            "hoursRemaining": float(sub.hours_remaining),
        }
        for sub in subscriptions
        if _as_aware(sub.expiry_date) > utc_now
    ]

    logger.debug(f"Live status for cafe {cafe.id}: {len(sessions)} running session(s)")
    return {
        "date": now.date().isoformat(),
        "time": minutes_to_time(now_minutes),
        "consoles": consoles,
        "sessions": sessions,
        "activeSubscriptions": active_subscriptions,
    }
