"""Booking writer.

Validation runs in a fixed order: required fields, capacity, pricing,
coupon. A capacity failure therefore never touches a coupon. The booking,
its items and any coupon redemption are committed together or not at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.models.booking import Booking, BookingItem, BookingSource, BookingStatus, PaymentMode
from cafebook.models.cafe import Cafe
from cafebook.services import coupon_service, pricing_service
from cafebook.services.availability_service import (
    aggregate_selections,
    check_capacity,
    minutes_to_time,
    parse_time_slot,
)
from cafebook.services.notification_service import EmailKind, NotificationDispatcher

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

CANCELLABLE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
ACTIVE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.IN_PROGRESS.value)


@dataclass
class TicketSelection:
    console: str
    quantity: int


@dataclass
class BookingRequest:
    cafe_id: Optional[int]
    booking_date: Optional[date]
    start_time: Optional[Union[str, time]]
    duration_minutes: Optional[int]
    selections: List[TicketSelection] = field(default_factory=list)
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    coupon_code: Optional[str] = None
    user_id: Optional[int] = None
    payment_mode: Optional[str] = None


def booking_email_data(booking: Booking) -> Dict[str, Any]:
    """Template data for confirmation and cancellation emails."""
    cafe = booking.cafe
    return {
        "email": booking.customer_email,
        "name": booking.customer_name,
        "bookingId": booking.id,
        "cafeName": cafe.name if cafe else "",
        "cafeAddress": cafe.address if cafe else None,
        "bookingDate": booking.booking_date.isoformat(),
        "startTime": minutes_to_time(booking.start_minutes),
        "duration": booking.duration_minutes,
        "tickets": [
            {"console": item.console_type, "quantity": item.quantity, "price": float(item.line_total)}
            for item in booking.items
        ],
        "totalAmount": float(booking.total_amount),
    }


def _digits(value: Optional[str]) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


def contact_matches(booking: Booking, phone: Optional[str] = None, email: Optional[str] = None) -> bool:
    """True when either contact detail matches the one stored on the booking."""
    if phone and booking.customer_phone and _digits(phone) == _digits(booking.customer_phone):
        return bool(_digits(phone))
    if email and booking.customer_email:
        return email.strip().lower() == booking.customer_email.strip().lower()
    return False


class BookingService:
    """Create and manage bookings."""

    def __init__(self, db: Session, notifier: Optional[NotificationDispatcher] = None):
        self.db = db
        self.notifier = notifier

    # ==================== WRITE PATH ====================

    def _require_fields(self, request: BookingRequest) -> Cafe:
        if request.cafe_id is None:
            raise ValidationError("cafe_id is required")
        if request.booking_date is None:
            raise ValidationError("booking_date is required")
        if not request.start_time:
            raise ValidationError("start_time is required")
        if request.duration_minutes is None:
            raise ValidationError("duration_minutes is required")
        pricing_service.validate_duration(request.duration_minutes)
        if not (request.customer_name or "").strip():
            raise ValidationError("customer_name is required")

        cafe = self.db.get(Cafe, request.cafe_id)
        if cafe is None or not cafe.is_active:
            raise NotFoundError("Cafe not found")
        return cafe

    def _price_items(self, cafe: Cafe, request: BookingRequest) -> List[BookingItem]:
        requested = aggregate_selections((s.console, s.quantity) for s in request.selections)
        items = []
        for console, quantity in requested.items():
            if quantity > console.max_quantity:
                raise ValidationError(
                    f"At most {console.max_quantity} {console.label} can be booked at once"
                )
            price = pricing_service.get_price(self.db, cafe.id, console, quantity, request.duration_minutes)
            if price is None:
                raise ValidationError(
                    f"No price set for {quantity} {console.label} for {request.duration_minutes} minutes"
                )
            if not pricing_service.splits_evenly(price, quantity):
                raise ValidationError(
                    f"Price for {quantity} {console.label} cannot be split evenly per console"
                )
            unit_price = (Decimal(price) / quantity).quantize(CENT)
            items.append(BookingItem(
                console_type=console.value,
                title=pricing_service.ticket_title(console, quantity),
                quantity=quantity,
                price=unit_price,
            ))
        return items

    def create_booking(
        self,
        request: BookingRequest,
        source: BookingSource = BookingSource.ONLINE,
    ) -> Booking:
        cafe = self._require_fields(request)
        start = parse_time_slot(request.start_time)

        check_capacity(
            self.db,
            cafe.id,
            request.booking_date,
            start,
            request.duration_minutes,
            [(s.console, s.quantity) for s in request.selections],
        )

        items = self._price_items(cafe, request)
        subtotal = sum((item.line_total for item in items), Decimal("0.00"))

        coupon = None
        discount = Decimal("0.00")
        if request.coupon_code:
            coupon = coupon_service.resolve_coupon(self.db, cafe.id, request.coupon_code, subtotal)
            discount = coupon_service.compute_discount(coupon, subtotal)

        walk_in = source == BookingSource.WALK_IN
        booking = Booking(
            cafe_id=cafe.id,
            user_id=request.user_id,
            booking_date=request.booking_date,
            start_time=start,
            duration_minutes=request.duration_minutes,
            subtotal_amount=subtotal,
            discount_amount=discount,
            total_amount=subtotal - discount,
            coupon_id=coupon.id if coupon else None,
            status=BookingStatus.CONFIRMED.value if walk_in else BookingStatus.PENDING.value,
            source=source.value,
            payment_mode=request.payment_mode or (PaymentMode.CASH.value if walk_in else None),
            customer_name=request.customer_name.strip(),
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            confirmed_at=datetime.now(timezone.utc) if walk_in else None,
            items=items,
        )

        try:
            self.db.add(booking)
            self.db.flush()
            if coupon is not None:
                coupon_service.record_redemption(
                    self.db, coupon, booking.id, request.customer_phone, discount
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Failed to write booking for cafe {cafe.id}")
            raise

        self.db.refresh(booking)
        logger.info(
            f"Booking {booking.id} created for cafe {cafe.id} on {booking.booking_date} "
            f"at {start.strftime('%H:%M')} total={booking.total_amount} source={booking.source}"
        )
        return booking

    def create_walk_in(self, request: BookingRequest) -> Booking:
        """Counter booking: confirmed immediately and paid in cash unless stated."""
        return self.create_booking(request, source=BookingSource.WALK_IN)

    # ==================== READ / TRANSITIONS ====================

    def get_booking(self, booking_id: str) -> Booking:
        booking = (
            self.db.query(Booking)
            .options(selectinload(Booking.items))
            .filter(Booking.id == booking_id)
            .first()
        )
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def list_cafe_bookings(
        self,
        cafe_id: int,
        booking_date: Optional[date] = None,
        status: Optional[str] = None,
    ) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .options(selectinload(Booking.items))
            .filter(Booking.cafe_id == cafe_id)
        )
        if booking_date is not None:
            query = query.filter(Booking.booking_date == booking_date)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booking_date.desc(), Booking.start_time).all()

    def _transition(self, booking_id: str, allowed_from: tuple, to_status: BookingStatus, **values: Any) -> Booking:
        """Guarded status update. Exactly one caller wins a given transition."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(allowed_from))
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        rowcount = self.db.execute(stmt).rowcount
        self.db.commit()

        booking = self.get_booking(booking_id)
        self.db.refresh(booking)
        if rowcount != 1:
            raise ConflictError(f"Booking is {booking.status} and cannot be {to_status.value}")
        return booking

    async def cancel_booking(self, booking_id: str) -> Booking:
        self.get_booking(booking_id)
        booking = self._transition(
            booking_id,
            CANCELLABLE_STATUSES,
            BookingStatus.CANCELLED,
            cancelled_at=datetime.now(timezone.utc),
        )
        logger.info(f"Booking {booking_id} cancelled")
        if self.notifier is not None and booking.customer_email:
            await self.notifier.notify_quietly(EmailKind.BOOKING_CANCELLATION, booking_email_data(booking))
        return booking

    def start_booking(self, booking_id: str) -> Booking:
        """Customer has arrived; the session is now running."""
        self.get_booking(booking_id)
        booking = self._transition(booking_id, (BookingStatus.CONFIRMED.value,), BookingStatus.IN_PROGRESS)
        logger.info(f"Booking {booking_id} started")
        return booking

    def complete_booking(self, booking_id: str) -> Booking:
        self.get_booking(booking_id)
        booking = self._transition(booking_id, ACTIVE_STATUSES, BookingStatus.COMPLETED)
        logger.info(f"Booking {booking_id} completed")
        return booking
