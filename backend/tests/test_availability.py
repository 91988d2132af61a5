"""Tests for slot arithmetic, availability and capacity checks."""

from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from cafebook.core.errors import CapacityError, NotFoundError, ValidationError
from cafebook.models import Booking, BookingItem, BookingStatus, Cafe, ConsoleType
from cafebook.services.availability_service import (
    build_time_slots,
    check_capacity,
    compute_availability,
    minutes_to_time,
    parse_time_slot,
    slots_overlap,
    time_to_minutes,
)

DAY = date(2026, 11, 2)


def _book(db: Session, cafe: Cafe, start: str, duration: int, quantity: int,
          console: str = "ps5", status: str = BookingStatus.CONFIRMED.value) -> Booking:
    booking = Booking(
        cafe_id=cafe.id,
        booking_date=DAY,
        start_time=parse_time_slot(start),
        duration_minutes=duration,
        status=status,
        customer_name="Walk In",
        items=[BookingItem(console_type=console, title="x", quantity=quantity, price=Decimal("100"))],
    )
    db.add(booking)
    db.commit()
    return booking


class TestTimeHelpers:
    """Tests for time parsing and formatting."""

    @pytest.mark.parametrize("value,expected", [
        ("17:00", 1020),
        ("09:05", 545),
        ("5:00 pm", 1020),
        ("12:00 am", 0),
        ("12:30 pm", 750),
        ("11:59 PM", 1439),
        (time(18, 15), 1095),
    ])
    def test_time_to_minutes(self, value, expected):
        assert time_to_minutes(value) == expected

    @pytest.mark.parametrize("value", ["", "25:00", "13:00 pm", "noon", "5pm"])
    def test_invalid_time_rejected(self, value):
        with pytest.raises(ValidationError):
            time_to_minutes(value)

    def test_minutes_to_time(self):
        assert minutes_to_time(1050) == "5:30 pm"
        assert minutes_to_time(0) == "12:00 am"
        assert minutes_to_time(720) == "12:00 pm"
        assert minutes_to_time(24 * 60 + 30) == "12:30 am"

    def test_overlap_is_half_open(self):
        # 17:00-18:00 and 18:00-19:00 touch but do not overlap
        assert slots_overlap(1020, 60, 1080, 60) is False
        assert slots_overlap(1020, 90, 1080, 60) is True
        assert slots_overlap(1050, 30, 1020, 60) is True

    def test_time_slots_cover_opening_hours(self):
        slots = build_time_slots()
        assert slots[0]["label"] == "10:00 am"
        assert slots[-1]["label"] == "11:45 pm"
        assert all(s["isPeak"] for s in slots if 18 <= s["hour"] < 22)
        assert not any(s["isPeak"] for s in slots if s["hour"] < 18)


class TestComputeAvailability:
    """Tests for per-console remaining capacity."""

    def test_empty_day_has_full_capacity(self, db_session: Session, cafe: Cafe):
        result = compute_availability(db_session, cafe.id, DAY, "17:00", 60)
        assert result[ConsoleType.PS5].available == 4
        assert result[ConsoleType.POOL].available == 2
        assert result[ConsoleType.XBOX].total == 0

    def test_unknown_cafe(self, db_session: Session):
        with pytest.raises(NotFoundError):
            compute_availability(db_session, 999, DAY, "17:00", 60)

    def test_existing_booking_uses_its_own_duration(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 3)

        # Both 30 minute windows inside the hour are blocked
        assert compute_availability(db_session, cafe.id, DAY, "17:00", 30)[ConsoleType.PS5].available == 1
        assert compute_availability(db_session, cafe.id, DAY, "17:30", 30)[ConsoleType.PS5].available == 1
        assert compute_availability(db_session, cafe.id, DAY, "18:00", 30)[ConsoleType.PS5].available == 4

    def test_cancelled_bookings_release_capacity(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 4, status=BookingStatus.CANCELLED.value)
        result = compute_availability(db_session, cafe.id, DAY, "17:00", 60)
        assert result[ConsoleType.PS5].available == 4

    def test_next_available_is_earliest_end(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 90, 2)
        _book(db_session, cafe, "17:00", 30, 1)
        entry = compute_availability(db_session, cafe.id, DAY, "17:00", 60)[ConsoleType.PS5]
        assert entry.booked == 3
        assert entry.next_available_at == "5:30 pm"
        assert entry.to_dict()["available"] == 1

    def test_overbooked_never_goes_negative(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 4)
        _book(db_session, cafe, "17:00", 60, 2)
        assert compute_availability(db_session, cafe.id, DAY, "17:00", 60)[ConsoleType.PS5].available == 0


class TestCheckCapacity:
    """Tests for the write-time capacity gate."""

    def test_exact_remaining_quantity_passes(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 2)
        check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("ps5", 2)])

    def test_partial_capacity_message(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 3)
        with pytest.raises(CapacityError) as exc:
            check_capacity(db_session, cafe.id, DAY, "17:30", 30, [("ps5", 2)])
        assert exc.value.console == "ps5"
        assert exc.value.message.startswith("Only 1 PS5 setup(s) available for this time slot.")

    def test_no_capacity_message(self, db_session: Session, cafe: Cafe):
        _book(db_session, cafe, "17:00", 60, 4)
        with pytest.raises(CapacityError) as exc:
            check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("ps5", 1)])
        assert exc.value.message == "No PS5 setups available. All are booked for overlapping time slots."

    def test_selections_are_summed_per_console(self, db_session: Session, cafe: Cafe):
        with pytest.raises(CapacityError):
            check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("ps5", 3), ("ps5", 2)])

    def test_console_the_cafe_lacks(self, db_session: Session, cafe: Cafe):
        with pytest.raises(CapacityError):
            check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("xbox", 1)])

    def test_empty_selection(self, db_session: Session, cafe: Cafe):
        with pytest.raises(ValidationError, match="No tickets selected."):
            check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("ps5", 0)])

    def test_unknown_console(self, db_session: Session, cafe: Cafe):
        with pytest.raises(ValidationError, match="Unknown console type"):
            check_capacity(db_session, cafe.id, DAY, "17:00", 60, [("gameboy", 1)])
