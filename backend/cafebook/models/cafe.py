"""Café and console pricing models."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafebook.db.base import Base, TimestampMixin


class ConsoleType(str, Enum):
    PS5 = "ps5"
    PS4 = "ps4"
    XBOX = "xbox"
    PC = "pc"
    POOL = "pool"
    ARCADE = "arcade"
    SNOOKER = "snooker"
    VR = "vr"
    STEERING = "steering"

    @property
    def label(self) -> str:
        return CONSOLE_LABELS[self]

    @property
    def count_column(self) -> str:
        return CONSOLE_COUNT_COLUMNS[self]

    @property
    def max_quantity(self) -> int:
        return CONSOLE_MAX_QUANTITY.get(self, 4)


# Inventory column on ``cafes`` for each console kind
CONSOLE_COUNT_COLUMNS = {
    ConsoleType.PS5: "ps5_count",
    ConsoleType.PS4: "ps4_count",
    ConsoleType.XBOX: "xbox_count",
    ConsoleType.PC: "pc_count",
    ConsoleType.POOL: "pool_count",
    ConsoleType.ARCADE: "arcade_count",
    ConsoleType.SNOOKER: "snooker_count",
    ConsoleType.VR: "vr_count",
    ConsoleType.STEERING: "steering_wheel_count",
}

CONSOLE_LABELS = {
    ConsoleType.PS5: "PS5",
    ConsoleType.PS4: "PS4",
    ConsoleType.XBOX: "Xbox",
    ConsoleType.PC: "PC",
    ConsoleType.POOL: "Pool Table",
    ConsoleType.ARCADE: "Arcade Machine",
    ConsoleType.SNOOKER: "Snooker",
    ConsoleType.VR: "VR",
    ConsoleType.STEERING: "Racing Setup",
}

# Per-booking quantity ceiling; anything not listed allows 4
CONSOLE_MAX_QUANTITY = {
    ConsoleType.POOL: 2,
    ConsoleType.SNOOKER: 2,
    ConsoleType.PC: 1,
    ConsoleType.VR: 1,
    ConsoleType.STEERING: 1,
    ConsoleType.XBOX: 2,
}


class Cafe(Base, TimestampMixin):
    """A gaming café and its console inventory."""

    __tablename__ = "cafes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hourly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    cover_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    opening_hours: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    ps5_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ps4_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    xbox_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pc_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pool_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    arcade_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    snooker_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    vr_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    steering_wheel_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    owner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True, index=True)

    pricing: Mapped[list["ConsolePricing"]] = relationship(
        "ConsolePricing", back_populates="cafe", cascade="all, delete-orphan"
    )

    def console_count(self, console: ConsoleType) -> int:
        return getattr(self, console.count_column) or 0


class ConsolePricing(Base):
    """One priced cell: (console, quantity, duration) -> price.

    A NULL price, like a missing row, means the combination is not sold.
    """

    __tablename__ = "console_pricing"
    __table_args__ = (
        UniqueConstraint("cafe_id", "console_type", "quantity", "duration_minutes", name="uq_console_pricing_cell"),
        CheckConstraint("price IS NULL OR price >= 0", name="price_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    cafe_id: Mapped[int] = mapped_column(ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False, index=True)
    console_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    cafe: Mapped["Cafe"] = relationship("Cafe", back_populates="pricing")
