"""Tests for coupon management, validation and discounts."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.models import Cafe, Coupon
from cafebook.services import coupon_service


def _coupon(db: Session, cafe: Cafe, **fields) -> Coupon:
    data = {"code": "save50", "discount_type": "flat", "discount_value": Decimal("50")}
    data.update(fields)
    coupon = coupon_service.upsert_coupon(db, cafe.id, data)
    db.commit()
    return coupon


class TestUpsertCoupon:
    def test_code_is_normalized(self, db_session: Session, cafe: Cafe):
        coupon = _coupon(db_session, cafe)
        assert coupon.code == "SAVE50"
        assert coupon.uses_count == 0
        assert coupon.is_active is True

    def test_duplicate_code_conflicts(self, db_session: Session, cafe: Cafe):
        _coupon(db_session, cafe)
        with pytest.raises(ConflictError):
            _coupon(db_session, cafe, code="Save50")

    def test_update_keeps_own_code(self, db_session: Session, cafe: Cafe):
        coupon = _coupon(db_session, cafe)
        updated = coupon_service.upsert_coupon(
            db_session, cafe.id, {"code": "SAVE50", "discount_value": Decimal("75")}, coupon_id=coupon.id
        )
        assert Decimal(updated.discount_value) == Decimal("75")

    def test_update_from_other_cafe_is_hidden(self, db_session: Session, cafe: Cafe):
        coupon = _coupon(db_session, cafe)
        with pytest.raises(NotFoundError):
            coupon_service.upsert_coupon(db_session, cafe.id + 1, {"discount_value": 1}, coupon_id=coupon.id)

    def test_validation(self, db_session: Session, cafe: Cafe):
        with pytest.raises(ValidationError, match="code is required"):
            coupon_service.upsert_coupon(db_session, cafe.id, {"discount_value": 5})
        with pytest.raises(ValidationError):
            coupon_service.upsert_coupon(db_session, cafe.id, {"code": "X", "discount_type": "bogo"})


class TestResolveCoupon:
    def test_inactive(self, db_session: Session, cafe: Cafe):
        coupon = _coupon(db_session, cafe)
        coupon_service.set_coupon_active(db_session, coupon, False)
        with pytest.raises(ValidationError, match="Invalid coupon code: SAVE50"):
            coupon_service.resolve_coupon(db_session, cafe.id, "save50", Decimal("100"))

    def test_unknown_code(self, db_session: Session, cafe: Cafe):
        with pytest.raises(ValidationError, match="Invalid coupon code"):
            coupon_service.resolve_coupon(db_session, cafe.id, "nope", Decimal("100"))

    def test_validity_window(self, db_session: Session, cafe: Cafe):
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        _coupon(db_session, cafe, valid_from=now + timedelta(days=1))
        _coupon(db_session, cafe, code="OLD", valid_until=now - timedelta(seconds=1))

        with pytest.raises(ValidationError, match="not valid yet"):
            coupon_service.resolve_coupon(db_session, cafe.id, "SAVE50", Decimal("100"), now=now)
        with pytest.raises(ValidationError, match="has expired"):
            coupon_service.resolve_coupon(db_session, cafe.id, "OLD", Decimal("100"), now=now)

    def test_minimum_order(self, db_session: Session, cafe: Cafe):
        _coupon(db_session, cafe, min_order_amount=Decimal("200"))
        with pytest.raises(ValidationError, match="minimum order of 200.00"):
            coupon_service.resolve_coupon(db_session, cafe.id, "SAVE50", Decimal("150"))
        assert coupon_service.resolve_coupon(db_session, cafe.id, "SAVE50", Decimal("200")).code == "SAVE50"

    def test_usage_limit(self, db_session: Session, cafe: Cafe):
        coupon = _coupon(db_session, cafe, max_uses=1)
        coupon_service.record_redemption(db_session, coupon, None, "98765", Decimal("50"))
        db_session.commit()

        with pytest.raises(ValidationError, match="usage limit"):
            coupon_service.resolve_coupon(db_session, cafe.id, "SAVE50", Decimal("100"))
        with pytest.raises(ValidationError, match="usage limit"):
            coupon_service.record_redemption(db_session, coupon, None, "98765", Decimal("50"))
        assert len(coupon_service.list_usage(db_session, coupon.id)) == 1


class TestComputeDiscount:
    def test_percentage_with_cap(self):
        coupon = Coupon(discount_type="percentage", discount_value=Decimal("20"), max_discount_amount=Decimal("30"))
        assert coupon_service.compute_discount(coupon, Decimal("100")) == Decimal("20.00")
        assert coupon_service.compute_discount(coupon, Decimal("500")) == Decimal("30.00")

    def test_flat_never_exceeds_subtotal(self):
        coupon = Coupon(discount_type="flat", discount_value=Decimal("50"))
        assert coupon_service.compute_discount(coupon, Decimal("120")) == Decimal("50.00")
        assert coupon_service.compute_discount(coupon, Decimal("40")) == Decimal("40.00")

    def test_percentage_rounds_to_cents(self):
        coupon = Coupon(discount_type="percentage", discount_value=Decimal("15"))
        assert coupon_service.compute_discount(coupon, Decimal("99.99")) == Decimal("15.00")
