"""Tests for membership plans and subscriptions."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from cafebook.core.errors import NotFoundError, ValidationError
from cafebook.models import Cafe, MembershipPlan, Subscription
from cafebook.services.membership_service import MembershipService


@pytest.fixture
def plan(db_session: Session, cafe: Cafe) -> MembershipPlan:
    plan = MembershipService(db_session).upsert_plan(cafe.id, {
        "name": "10 Hour Pack",
        "price": Decimal("999"),
        "hours": Decimal("10"),
        "validity_days": 60,
        "plan_type": "hourly_bundle",
        "console_type": "ps5",
    })
    db_session.commit()
    return plan


class TestPlans:
    def test_defaults(self, db_session: Session, cafe: Cafe):
        plan = MembershipService(db_session).upsert_plan(cafe.id, {"name": "Day Pass", "price": 300})
        assert plan.validity_days == 30

    def test_update_only_given_fields(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        updated = MembershipService(db_session).upsert_plan(cafe.id, {"price": Decimal("899")}, plan_id=plan.id)
        assert Decimal(updated.price) == Decimal("899")
        assert updated.name == "10 Hour Pack"

    @pytest.mark.parametrize("data,message", [
        ({"price": 100}, "name is required"),
        ({"name": "X"}, "price is required"),
        ({"name": "X", "price": -1}, "price must not be negative"),
        ({"name": "X", "price": 1, "validity_days": 0}, "validity_days must be at least 1"),
        ({"name": "X", "price": 1, "plan_type": "yearly"}, "plan_type"),
        ({"name": "X", "price": 1, "console_type": "gameboy"}, "Unknown console type"),
    ])
    def test_validation(self, db_session: Session, cafe: Cafe, data, message):
        with pytest.raises(ValidationError, match=message):
            MembershipService(db_session).upsert_plan(cafe.id, data)

    def test_list_and_delete(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        service = MembershipService(db_session)
        assert [p.id for p in service.list_plans(cafe.id)] == [plan.id]
        service.delete_plan(plan)
        db_session.commit()
        assert service.list_plans(cafe.id) == []
        with pytest.raises(NotFoundError):
            service.get_plan(plan.id)


class TestSubscriptions:
    def test_expiry_and_hours_come_from_plan(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        purchased = datetime(2026, 10, 1, 10, 0, tzinfo=timezone.utc)

        sub = MembershipService(db_session).create_subscription(
            cafe_id=cafe.id,
            plan_id=plan.id,
            customer_name=" Ravi ",
            customer_phone="9000000000",
            payment_mode="cash",
            purchase_date=purchased,
        )

        assert sub.customer_name == "Ravi"
        assert sub.expiry_date == purchased + timedelta(days=60)
        assert Decimal(sub.hours_purchased) == Decimal("10")
        assert Decimal(sub.hours_remaining) == Decimal("10")
        assert Decimal(sub.amount_paid) == Decimal("999")
        assert sub.status == "active"

    def test_plan_must_belong_to_cafe(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        other = Cafe(name="Other", slug="other", ps5_count=1)
        db_session.add(other)
        db_session.commit()
        with pytest.raises(ValidationError, match="does not belong"):
            MembershipService(db_session).create_subscription(other.id, plan.id, "Ravi")

    def test_customer_name_required(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        with pytest.raises(ValidationError, match="customer_name is required"):
            MembershipService(db_session).create_subscription(cafe.id, plan.id, "")

    def test_list_and_delete(self, db_session: Session, cafe: Cafe, plan: MembershipPlan):
        service = MembershipService(db_session)
        sub = service.create_subscription(cafe.id, plan.id, "Ravi", amount_paid=Decimal("500"))
        db_session.commit()
        assert Decimal(sub.amount_paid) == Decimal("500")
        assert [s.id for s in service.list_subscriptions(cafe.id)] == [sub.id]

        service.delete_subscription(sub)
        db_session.commit()
        assert db_session.query(Subscription).count() == 0
