"""Membership plan and subscription models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafebook.db.base import Base, TimestampMixin


class PlanType(str, Enum):
    DAY_PASS = "day_pass"
    HOURLY_BUNDLE = "hourly_bundle"


class PlayerCount(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"


class MembershipPlan(Base, TimestampMixin):
    __tablename__ = "membership_plans"

    id: Mapped[int] = mapped_column(primary_key=True)
    cafe_id: Mapped[int] = mapped_column(ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=0)
    validity_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    plan_type: Mapped[str] = mapped_column(String(20), nullable=False, default=PlanType.HOURLY_BUNDLE.value)
    console_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    player_count: Mapped[str] = mapped_column(String(10), nullable=False, default=PlayerCount.SINGLE.value)


class Subscription(Base):
    """A customer's purchase of a membership plan."""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    cafe_id: Mapped[int] = mapped_column(ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False, index=True)
    membership_plan_id: Mapped[int] = mapped_column(ForeignKey("membership_plans.id", ondelete="CASCADE"), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    hours_purchased: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    hours_remaining: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    purchase_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    plan: Mapped["MembershipPlan"] = relationship("MembershipPlan")
