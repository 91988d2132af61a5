"""Owner reports: revenue for a period against the one before it, and peak hours.

Every booking that was not cancelled counts, walk-ins and unpaid online
bookings included. Food and drink sold during sessions is reported
separately but is already part of each booking's total.
"""

import logging
from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from cafebook.core.errors import ValidationError
from cafebook.models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)

PEAK_WINDOW_DAYS = 30


def _bookings(db: Session, cafe_id: int, start: date, end: date) -> List[Booking]:
    return (
        db.query(Booking)
        .options(selectinload(Booking.items), selectinload(Booking.orders))
        .filter(
            Booking.cafe_id == cafe_id,
            Booking.booking_date >= start,
            Booking.booking_date <= end,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .all()
    )


def percent_change(current: Decimal, previous: Decimal) -> float:
    """Change from ``previous`` to ``current`` in percent, one decimal place."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round(float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100), 1)


def summarize(bookings: List[Booking]) -> Dict[str, Any]:
    revenue = Decimal("0.00")
    discounts = Decimal("0.00")
    fnb_revenue = Decimal("0.00")
    by_console: Dict[str, Decimal] = defaultdict(Decimal)
    by_payment: Dict[str, Decimal] = defaultdict(Decimal)
    by_source: Counter = Counter()

    for booking in bookings:
        total = Decimal(booking.total_amount or 0)
        revenue += total
        discounts += Decimal(booking.discount_amount or 0)
        by_payment[booking.payment_mode or "unpaid"] += total
        by_source[booking.source] += 1
        for item in booking.items:
            by_console[item.console_type] += item.line_total
        for order in booking.orders:
            fnb_revenue += Decimal(order.total_price)

    count = len(bookings)
    return {
        "revenue": float(revenue),
        "bookings": count,
        "averageBookingValue": float(round(revenue / count, 2)) if count else 0.0,
        "discounts": float(discounts),
        "fnbRevenue": float(fnb_revenue),
        "byConsole": {k: float(v) for k, v in sorted(by_console.items())},
        "byPaymentMode": {k: float(v) for k, v in sorted(by_payment.items())},
        "bySource": dict(sorted(by_source.items())),
    }


def compare_periods(
    db: Session,
    cafe_id: int,
    start: date,
    end: date,
    prev_start: Optional[date] = None,
    prev_end: Optional[date] = None,
) -> Dict[str, Any]:
    """Summaries for [start, end] and a previous period.

    Without an explicit previous period the equally long span ending the
    day before ``start`` is used.
    """
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    if (prev_start is None) != (prev_end is None):
        raise ValidationError("prevStartDate and prevEndDate must be given together")
    if prev_start is None:
        prev_end = start - timedelta(days=1)
        prev_start = prev_end - (end - start)
    elif prev_end < prev_start:
        raise ValidationError("prevEndDate must not be before prevStartDate")

    logger.debug(f"Report for cafe {cafe_id}: {start}..{end} against {prev_start}..{prev_end}")
    current = summarize(_bookings(db, cafe_id, start, end))
    previous = summarize(_bookings(db, cafe_id, prev_start, prev_end))
    return {
        "period": {"startDate": start.isoformat(), "endDate": end.isoformat()},
        "previousPeriod": {"startDate": prev_start.isoformat(), "endDate": prev_end.isoformat()},
        "current": current,
        "previous": previous,
        "change": {
            "revenue": percent_change(Decimal(str(current["revenue"])), Decimal(str(previous["revenue"]))),
            "bookings": percent_change(Decimal(current["bookings"]), Decimal(previous["bookings"])),
            "fnbRevenue": percent_change(Decimal(str(current["fnbRevenue"])), Decimal(str(previous["fnbRevenue"]))),
        },
    }


def daily_summary(db: Session, cafe_id: int, day: date) -> Dict[str, Any]:
    """One day against the day before."""
    yesterday = day - timedelta(days=1)
    return compare_periods(db, cafe_id, day, day, yesterday, yesterday)


def peak_hours(db: Session, cafe_id: int, today: date, days: int = PEAK_WINDOW_DAYS) -> Dict[str, Any]:
    """Bookings by starting hour over the last ``days`` days, all 24 hours present."""
    bookings = _bookings(db, cafe_id, today - timedelta(days=days), today)
    counts = Counter(b.start_time.hour for b in bookings)
    hours = [{"hour": h, "bookings": counts.get(h, 0)} for h in range(24)]
    busiest = max(hours, key=lambda h: h["bookings"]) if bookings else None
    return {
        "days": days,
        "hours": hours,
        "peakHour": busiest["hour"] if busiest else None,
    }
