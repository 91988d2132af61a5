"""Daily cash drawer: opening balance, mid-day collection, closing check."""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafebook.core.errors import ConflictError, ValidationError
from cafebook.models.booking import Booking, BookingStatus, PaymentMode
from cafebook.models.cash_drawer import CashDrawerRecord

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _money(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(Decimal("0.01"))


class CashDrawerService:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, cafe_id: int, day: date) -> Optional[CashDrawerRecord]:
        return (
            self.db.query(CashDrawerRecord)
            .filter(CashDrawerRecord.cafe_id == cafe_id, CashDrawerRecord.record_date == day)
            .first()
        )

    def _opening_balance(self, cafe_id: int, day: date) -> Decimal:
        """Carry over the last closing: actual, else expected, else zero."""
        previous = (
            self.db.query(CashDrawerRecord)
            .filter(CashDrawerRecord.cafe_id == cafe_id, CashDrawerRecord.record_date < day)
            .order_by(CashDrawerRecord.record_date.desc())
            .first()
        )
        if previous is None:
            return ZERO
        if previous.actual_closing is not None:
            return _money(previous.actual_closing)
        if previous.expected_closing is not None:
            return _money(previous.expected_closing)
        return ZERO

    def get_or_open_record(self, cafe_id: int, day: date) -> CashDrawerRecord:
        record = self._find(cafe_id, day)
        if record is not None:
            return record

        record = CashDrawerRecord(
            cafe_id=cafe_id,
            record_date=day,
            opening_balance=self._opening_balance(cafe_id, day),
        )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError:
            # Opened concurrently by another request; nothing else is pending yet
            self.db.rollback()
            logger.info(f"Cash drawer for cafe {cafe_id} on {day} already opened")
            record = self._find(cafe_id, day)
        return record

    def _cash_bookings(self, cafe_id: int, day: date) -> List[Booking]:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        return (
            self.db.query(Booking)
            .filter(
                Booking.cafe_id == cafe_id,
                Booking.status != BookingStatus.CANCELLED.value,
                func.lower(Booking.payment_mode) == PaymentMode.CASH.value,
                Booking.created_at >= start,
                Booking.created_at < end,
            )
            .all()
        )

    def get_status(self, cafe_id: int, day: date) -> Dict[str, Any]:
        record = self.get_or_open_record(cafe_id, day)
        bookings = self._cash_bookings(cafe_id, day)

        sales_today = sum((_money(b.total_amount) for b in bookings), ZERO)
        collected_at = _as_aware(record.collection_time)
        if collected_at is not None:
            sales_after = sum(
                (_money(b.total_amount) for b in bookings if _as_aware(b.created_at) > collected_at),
                ZERO,
            )
        else:
            sales_after = ZERO

        opening = _money(record.opening_balance)
        return {
            "record": record,
            "opening_balance": opening,
            "cash_sales_today": sales_today,
            "cash_sales_after_collection": sales_after,
            "expected_in_drawer": opening + sales_today,
            "has_collected": record.is_collected,
            "expected_closing": self.expected_closing(record, sales_today),
        }

    @staticmethod
    def expected_closing(record: CashDrawerRecord, cash_sales_since_open: Decimal) -> Decimal:
        return _money(record.opening_balance) + cash_sales_since_open - _money(record.change_left)

    def record_collection(
        self,
        cafe_id: int,
        day: date,
        amount_collected: Decimal,
        change_left: Decimal,
        collected_by: Optional[str] = None,
    ) -> CashDrawerRecord:
        """Owner takes cash out once per day. A second attempt is a conflict."""
        if amount_collected is None or _money(amount_collected) < 0:
            raise ValidationError("amount_collected must be zero or more")
        if change_left is None or _money(change_left) < 0:
            raise ValidationError("change_left must be zero or more")

        record = self.get_or_open_record(cafe_id, day)
        stmt = (
            update(CashDrawerRecord)
            .where(CashDrawerRecord.id == record.id, CashDrawerRecord.collection_time.is_(None))
            .values(
                amount_collected=_money(amount_collected),
                change_left=_money(change_left),
                collection_time=datetime.now(timezone.utc),
                collected_by=collected_by,
            )
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount != 1:
            raise ConflictError("Cash has already been collected today")
        self.db.refresh(record)
        logger.info(f"Cash collected for cafe {cafe_id} on {day}: {record.amount_collected}")
        return record

    def verify_closing(
        self,
        cafe_id: int,
        day: date,
        actual_closing: Optional[Decimal] = None,
        discrepancy_note: Optional[str] = None,
    ) -> CashDrawerRecord:
        """Close the day once. Without a count the expected amount is taken as actual."""
        status = self.get_status(cafe_id, day)
        record = status["record"]
        expected = status["expected_closing"]
        actual = _money(actual_closing) if actual_closing is not None else expected
        discrepancy = actual - expected

        stmt = (
            update(CashDrawerRecord)
            .where(CashDrawerRecord.id == record.id, CashDrawerRecord.closing_verified.is_(False))
            .values(
                expected_closing=expected,
                actual_closing=actual,
                discrepancy_amount=discrepancy,
                has_discrepancy=discrepancy != 0,
                discrepancy_note=discrepancy_note if discrepancy != 0 else None,
                closing_verified=True,
                closing_verified_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount != 1:
            raise ConflictError("Closing has already been verified today")
        self.db.refresh(record)
        if discrepancy != 0:
            logger.warning(f"Cash drawer discrepancy for cafe {cafe_id} on {day}: {discrepancy}")
        return record

    def history(self, cafe_id: int, limit: int = 7) -> List[CashDrawerRecord]:
        return (
            self.db.query(CashDrawerRecord)
            .filter(CashDrawerRecord.cafe_id == cafe_id)
            .order_by(CashDrawerRecord.record_date.desc())
            .limit(limit)
            .all()
        )
