"""Tests for owner reports, live floor status and the coupon customer list."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from cafebook.core.errors import ValidationError
from cafebook.models import Cafe, InventoryItem, MembershipPlan
from cafebook.services import coupon_service, report_service
from cafebook.services.billing_service import BillingService
from cafebook.services.booking_service import BookingRequest, BookingService, TicketSelection
from cafebook.services.live_status_service import live_status
from cafebook.services.membership_service import MembershipService

API = "/api/v1/owner"


def _request(cafe: Cafe, day: date, start: str = "17:00", quantity: int = 1, **overrides) -> BookingRequest:
    values = dict(
        cafe_id=cafe.id,
        booking_date=day,
        start_time=start,
        duration_minutes=60,
        selections=[TicketSelection(console="ps5", quantity=quantity)],
        customer_name="Asha",
        customer_phone="9876543210",
    )
    values.update(overrides)
    return BookingRequest(**values)


@pytest.fixture
def week(db_session: Session, cafe: Cafe):
    """Bookings across the week of 2 Nov 2026 and the week before it."""
    service = BookingService(db_session)
    online = service.create_booking(_request(cafe, date(2026, 11, 2), quantity=2))
    walk_in = service.create_walk_in(_request(cafe, date(2026, 11, 3), start="19:00"))
    cancelled = service.create_booking(_request(cafe, date(2026, 11, 4), start="20:00"))
    service.create_booking(_request(cafe, date(2026, 10, 30), customer_name="Ravi", customer_phone="9000000000"))

    chips = InventoryItem(cafe_id=cafe.id, name="Chips", price=Decimal("30"), stock_quantity=10)
    db_session.add(chips)
    db_session.commit()
    BillingService(db_session).add_items(walk_in.id, [(chips.id, 2)])
    return online, walk_in, cancelled


class TestPeriodReport:
    @pytest.mark.asyncio
    async def test_compares_with_preceding_period(self, db_session: Session, cafe: Cafe, week):
        _, _, cancelled = week
        await BookingService(db_session).cancel_booking(cancelled.id)

        report = report_service.compare_periods(db_session, cafe.id, date(2026, 11, 2), date(2026, 11, 8))

        assert report["previousPeriod"] == {"startDate": "2026-10-26", "endDate": "2026-11-01"}
        current = report["current"]
        assert current["revenue"] == 490.0
        assert current["bookings"] == 2
        assert current["fnbRevenue"] == 60.0
        assert current["byConsole"] == {"ps5": 430.0}
        assert current["byPaymentMode"] == {"cash": 210.0, "unpaid": 280.0}
        assert current["bySource"] == {"online": 1, "walk_in": 1}
        assert current["averageBookingValue"] == 245.0
        assert report["previous"]["revenue"] == 150.0
        assert report["change"] == {"revenue": 226.7, "bookings": 100.0, "fnbRevenue": 100.0}

    def test_explicit_previous_period(self, db_session: Session, cafe: Cafe, week):
        report = report_service.compare_periods(
            db_session, cafe.id, date(2026, 11, 2), date(2026, 11, 2), date(2026, 11, 3), date(2026, 11, 3)
        )
        assert report["current"]["revenue"] == 280.0
        assert report["previous"]["revenue"] == 210.0

    def test_invalid_ranges(self, db_session: Session, cafe: Cafe):
        with pytest.raises(ValidationError, match="endDate must not be before startDate"):
            report_service.compare_periods(db_session, cafe.id, date(2026, 11, 8), date(2026, 11, 2))
        with pytest.raises(ValidationError, match="must be given together"):
            report_service.compare_periods(
                db_session, cafe.id, date(2026, 11, 2), date(2026, 11, 8), prev_start=date(2026, 10, 1)
            )

    def test_percent_change(self):
        assert report_service.percent_change(Decimal("0"), Decimal("0")) == 0.0
        assert report_service.percent_change(Decimal("5"), Decimal("0")) == 100.0
        assert report_service.percent_change(Decimal("50"), Decimal("100")) == -50.0

    def test_daily_summary(self, db_session: Session, cafe: Cafe, week):
        report = report_service.daily_summary(db_session, cafe.id, date(2026, 11, 3))
        assert report["current"]["revenue"] == 210.0
        assert report["previous"]["revenue"] == 280.0
        assert report["change"]["revenue"] == -25.0


class TestPeakHours:
    def test_counts_by_start_hour(self, db_session: Session, cafe: Cafe, week):
        BookingService(db_session).create_booking(_request(cafe, date(2026, 9, 1)))

        result = report_service.peak_hours(db_session, cafe.id, date(2026, 11, 10))

        assert len(result["hours"]) == 24
        assert result["hours"][17] == {"hour": 17, "bookings": 2}
        assert result["hours"][19]["bookings"] == 1
        assert result["hours"][20]["bookings"] == 1
        assert result["peakHour"] == 17

    def test_no_bookings(self, db_session: Session, cafe: Cafe):
        result = report_service.peak_hours(db_session, cafe.id, date(2026, 11, 10))
        assert result["peakHour"] is None
        assert sum(h["bookings"] for h in result["hours"]) == 0


class TestCouponCustomers:
    @pytest.mark.asyncio
    async def test_groups_by_phone(self, db_session: Session, cafe: Cafe, week):
        _, _, cancelled = week
        await BookingService(db_session).cancel_booking(cancelled.id)
        service = BookingService(db_session)
        service.create_booking(_request(cafe, date(2026, 11, 5), quantity=4, customer_name="Ravi K",
                                        customer_phone="9000000000"))
        service.create_booking(_request(cafe, date(2026, 11, 6), customer_phone=None))

        customers = coupon_service.list_customers(db_session, cafe.id)

        assert customers == [
            {"id": "9000000000", "phone": "9000000000", "name": "Ravi K", "visits": 2,
             "total_spent": 650.0, "last_visit": "2026-11-05"},
            {"id": "9876543210", "phone": "9876543210", "name": "Asha", "visits": 2,
             "total_spent": 490.0, "last_visit": "2026-11-03"},
        ]


class TestLiveStatus:
    def test_running_sessions_and_free_consoles(self, db_session: Session, cafe: Cafe):
        service = BookingService(db_session)
        running = service.create_walk_in(_request(cafe, date(2026, 11, 2), quantity=2, customer_name="Dev"))
        service.start_booking(running.id)
        service.create_walk_in(_request(cafe, date(2026, 11, 2), customer_name="Not Arrived"))

        status = live_status(db_session, cafe, datetime(2026, 11, 2, 17, 30))

        assert status["consoles"] == [
            {"console": "ps5", "label": "PS5", "total": 4, "inUse": 2, "free": 2},
            {"console": "pool", "label": "Pool Table", "total": 2, "inUse": 0, "free": 2},
        ]
        [session] = status["sessions"]
        assert session["customerName"] == "Dev"
        assert session["startTime"] == "5:00 pm"
        assert session["endTime"] == "6:00 pm"
        assert session["minutesRemaining"] == 30
        assert session["overdue"] is False

        late = live_status(db_session, cafe, datetime(2026, 11, 2, 18, 10))
        assert late["sessions"][0]["overdue"] is True
        assert late["sessions"][0]["minutesRemaining"] == 0

    def test_active_subscriptions(self, db_session: Session, cafe: Cafe):
        plan = MembershipPlan(cafe_id=cafe.id, name="Pass", price=Decimal("499"), hours=Decimal("5"),
                              validity_days=30, console_type="ps5")
        db_session.add(plan)
        db_session.commit()
        memberships = MembershipService(db_session)
        memberships.create_subscription(cafe.id, plan.id, "Ravi")
        memberships.create_subscription(cafe.id, plan.id, "Old", purchase_date=datetime(2020, 1, 1, tzinfo=timezone.utc))
        db_session.commit()

        status = live_status(db_session, cafe, datetime(2026, 11, 2, 17, 30))

        assert [(s["customerName"], s["consoleType"], s["hoursRemaining"]) for s in status["activeSubscriptions"]] == [
            ("Ravi", "ps5", 5.0),
        ]


class TestReportRoutes:
    def test_reports(self, client: TestClient, cafe: Cafe, owner_headers: dict, week):
        report = client.post(f"{API}/reports", headers=owner_headers, json={
            "cafeId": cafe.id, "startDate": "2026-11-02", "endDate": "2026-11-08",
        })
        assert report.status_code == 200
        assert report.json()["previous"]["bookings"] == 1

        bad = client.post(f"{API}/reports", headers=owner_headers, json={
            "cafeId": cafe.id, "startDate": "2026-11-08", "endDate": "2026-11-02",
        })
        assert bad.status_code == 400

        peak = client.get(f"{API}/reports/peak-hours", params={"cafeId": cafe.id}, headers=owner_headers)
        assert len(peak.json()["hours"]) == 24

        daily = client.get(f"{API}/reports/daily", params={"cafeId": cafe.id, "date": "2026-11-03"},
                           headers=owner_headers)
        assert daily.json()["current"]["revenue"] == 210.0

    def test_live_status_and_customers(self, client: TestClient, cafe: Cafe, owner_headers: dict, week):
        live = client.get(f"{API}/live-status", params={"cafeId": cafe.id}, headers=owner_headers)
        assert live.status_code == 200
        assert [c["console"] for c in live.json()["consoles"]] == ["ps5", "pool"]

        customers = client.get(f"{API}/coupons/customers", params={"cafeId": cafe.id}, headers=owner_headers)
        assert customers.status_code == 200
        assert customers.json()[0]["phone"] == "9876543210"

    def test_other_owner_forbidden(self, client: TestClient, cafe: Cafe, other_owner_headers: dict):
        response = client.post(f"{API}/reports", headers=other_owner_headers, json={
            "cafeId": cafe.id, "startDate": "2026-11-02", "endDate": "2026-11-08",
        })
        assert response.status_code == 403
