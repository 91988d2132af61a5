"""Daily cash drawer record."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cafebook.db.base import Base, TimestampMixin


class CashDrawerRecord(Base, TimestampMixin):
    """One row per café per day.

    Collection and closing verification each happen at most once.
    """

    __tablename__ = "cash_drawer_records"
    __table_args__ = (
        UniqueConstraint("cafe_id", "record_date", name="uq_cash_drawer_cafe_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    cafe_id: Mapped[int] = mapped_column(ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False, index=True)
    record_date: Mapped[date] = mapped_column(Date, nullable=False)

    opening_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)

    amount_collected: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    change_left: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    collection_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    collected_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    expected_closing: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    actual_closing: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    has_discrepancy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discrepancy_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    discrepancy_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    closing_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closing_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_collected(self) -> bool:
        return self.collection_time is not None
