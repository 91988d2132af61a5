"""Membership plans and customer subscriptions."""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from cafebook.core.errors import NotFoundError, ValidationError
from cafebook.models.cafe import ConsoleType
from cafebook.models.membership import MembershipPlan, PlanType, PlayerCount, Subscription

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30

PLAN_FIELDS = (
    "name",
    "description",
    "price",
    "hours",
    "validity_days",
    "plan_type",
    "console_type",
    "player_count",
)


class MembershipService:
    """Owner-side plan catalog and subscription sales."""

    def __init__(self, db: Session):
        self.db = db

    def list_plans(self, cafe_id: int) -> List[MembershipPlan]:
        return (
            self.db.query(MembershipPlan)
            .filter(MembershipPlan.cafe_id == cafe_id)
            .order_by(MembershipPlan.price)
            .all()
        )

    def get_plan(self, plan_id: int) -> MembershipPlan:
        plan = self.db.get(MembershipPlan, plan_id)
        if plan is None:
            raise NotFoundError("Membership plan not found")
        return plan

    def upsert_plan(self, cafe_id: int, data: Dict[str, Any], plan_id: Optional[int] = None) -> MembershipPlan:
        """Create a plan, or update it when ``plan_id`` is given."""
        self._validate_plan_fields(data, creating=plan_id is None)

        if plan_id is not None:
            plan = self.get_plan(plan_id)
            if plan.cafe_id != cafe_id:
                raise NotFoundError("Membership plan not found")
        else:
            plan = MembershipPlan(cafe_id=cafe_id)

        for field in PLAN_FIELDS:
            if field in data:
                setattr(plan, field, data[field])
        if plan.validity_days is None:
            plan.validity_days = DEFAULT_VALIDITY_DAYS

        if plan.id is None:
            self.db.add(plan)
        self.db.flush()
        return plan

    def _validate_plan_fields(self, data: Dict[str, Any], creating: bool) -> None:
        if creating:
            for field in ("name", "price"):
                if data.get(field) in (None, ""):
                    raise ValidationError(f"{field} is required")
        if data.get("price") is not None and Decimal(str(data["price"])) < 0:
            raise ValidationError("price must not be negative")
        if data.get("hours") is not None and Decimal(str(data["hours"])) < 0:
            raise ValidationError("hours must not be negative")
        if data.get("validity_days") is not None and int(data["validity_days"]) < 1:
            raise ValidationError("validity_days must be at least 1")
        if data.get("plan_type") is not None and data["plan_type"] not in {t.value for t in PlanType}:
            raise ValidationError("plan_type must be 'day_pass' or 'hourly_bundle'")
        if data.get("player_count") is not None and data["player_count"] not in {p.value for p in PlayerCount}:
            raise ValidationError("player_count must be 'single' or 'double'")
        if data.get("console_type") is not None and data["console_type"] not in {c.value for c in ConsoleType}:
            raise ValidationError(f"Unknown console type: {data['console_type']}")

    def delete_plan(self, plan: MembershipPlan) -> None:
        self.db.delete(plan)
        self.db.flush()

    def list_subscriptions(self, cafe_id: int) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.cafe_id == cafe_id)
            .order_by(Subscription.purchase_date.desc())
            .all()
        )

    def get_subscription(self, subscription_id: int) -> Subscription:
        subscription = self.db.get(Subscription, subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    def create_subscription(
        self,
        cafe_id: int,
        plan_id: int,
        customer_name: str,
        customer_phone: Optional[str] = None,
        payment_mode: Optional[str] = None,
        amount_paid: Optional[Decimal] = None,
        purchase_date: Optional[datetime] = None,
    ) -> Subscription:
        if not (customer_name or "").strip():
            raise ValidationError("customer_name is required")
        plan = self.get_plan(plan_id)
        if plan.cafe_id != cafe_id:
            raise ValidationError("Membership plan does not belong to this cafe")

        purchased = purchase_date or datetime.now(timezone.utc)
        validity = plan.validity_days or DEFAULT_VALIDITY_DAYS
        hours = Decimal(plan.hours or 0)

        subscription = Subscription(
            cafe_id=cafe_id,
            membership_plan_id=plan.id,
            customer_name=customer_name.strip(),
            customer_phone=customer_phone,
            hours_purchased=hours,
            hours_remaining=hours,
            amount_paid=amount_paid if amount_paid is not None else plan.price,
            payment_mode=payment_mode,
            purchase_date=purchased,
            expiry_date=purchased + timedelta(days=validity),
            status="active",
        )
        self.db.add(subscription)
        self.db.flush()
        logger.info(f"Subscription {subscription.id} sold on plan {plan.id} for cafe {cafe_id}")
        return subscription

    def delete_subscription(self, subscription: Subscription) -> None:
        self.db.delete(subscription)
        self.db.flush()
