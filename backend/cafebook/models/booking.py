"""Booking models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafebook.db.base import Base, TimestampMixin


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingSource(str, Enum):
    ONLINE = "online"
    WALK_IN = "walk_in"


class PaymentMode(str, Enum):
    CASH = "cash"
    UPI = "upi"
    ONLINE = "online"


def _new_booking_id() -> str:
    return str(uuid.uuid4())


class Booking(Base, TimestampMixin):
    """A customer's reservation of one or more consoles for a time window.

    Rows are never deleted; cancellation is a status transition.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_cafe_date", "cafe_id", "booking_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_booking_id)
    cafe_id: Mapped[int] = mapped_column(ForeignKey("cafes.id"), nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)

    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)

    subtotal_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    coupon_id: Mapped[Optional[int]] = mapped_column(ForeignKey("coupons.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default=BookingSource.ONLINE.value)
    payment_mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    uropay_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    upi_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["BookingItem"]] = relationship(
        "BookingItem", back_populates="booking", cascade="all, delete-orphan", order_by="BookingItem.id"
    )
    orders: Mapped[list["BookingOrder"]] = relationship(
        "BookingOrder", back_populates="booking", cascade="all, delete-orphan", order_by="BookingOrder.id"
    )
    cafe: Mapped["Cafe"] = relationship("Cafe")

    @property
    def start_minutes(self) -> int:
        return self.start_time.hour * 60 + self.start_time.minute

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + (self.duration_minutes or 0)


class BookingItem(Base):
    """One console line of a booking. ``price`` is per console."""

    __tablename__ = "booking_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    console_type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity
