"""Coupon management and redemption."""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.models.coupon import Coupon, CouponUsage, DiscountType

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

COUPON_FIELDS = (
    "discount_type",
    "discount_value",
    "max_discount_amount",
    "min_order_amount",
    "max_uses",
    "valid_from",
    "valid_until",
    "is_active",
)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def list_coupons(db: Session, cafe_id: int) -> List[Coupon]:
    return (
        db.query(Coupon)
        .filter(Coupon.cafe_id == cafe_id)
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .all()
    )


def get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    return coupon


def upsert_coupon(db: Session, cafe_id: int, data: Dict[str, Any], coupon_id: Optional[int] = None) -> Coupon:
    """Create a coupon, or update it when ``coupon_id`` is given."""
    code = normalize_code(data.get("code"))
    if coupon_id is None and not code:
        raise ValidationError("code is required")

    discount_type = data.get("discount_type")
    if discount_type is not None and discount_type not in {t.value for t in DiscountType}:
        raise ValidationError("discount_type must be 'percentage' or 'flat'")
    value = data.get("discount_value")
    if value is not None and Decimal(str(value)) < 0:
        raise ValidationError("discount_value must not be negative")

    if coupon_id is not None:
        coupon = get_coupon(db, coupon_id)
        if coupon.cafe_id != cafe_id:
            raise NotFoundError("Coupon not found")
    else:
        coupon = Coupon(cafe_id=cafe_id, uses_count=0)

    if code:
        query = db.query(Coupon).filter(Coupon.cafe_id == cafe_id, Coupon.code == code)
        if coupon_id is not None:
            query = query.filter(Coupon.id != coupon_id)
        clash = query.first()
        if clash is not None:
            raise ConflictError(f"Coupon code {code} already exists")
        coupon.code = code

    for field in COUPON_FIELDS:
        if field in data:
            setattr(coupon, field, data[field])

    if coupon.id is None:
        db.add(coupon)
    db.flush()
    return coupon


def set_coupon_active(db: Session, coupon: Coupon, is_active: bool) -> Coupon:
    coupon.is_active = bool(is_active)
    db.flush()
    return coupon


def delete_coupon(db: Session, coupon: Coupon) -> None:
    db.delete(coupon)
    db.flush()


def list_usage(db: Session, coupon_id: int) -> List[CouponUsage]:
    return (
        db.query(CouponUsage)
        .filter(CouponUsage.coupon_id == coupon_id)
        .order_by(CouponUsage.used_at.desc())
        .all()
    )


def resolve_coupon(
    db: Session,
    cafe_id: int,
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> Coupon:
    """Find a coupon the order may use, or raise ValidationError saying why not."""
    now = now or datetime.now(timezone.utc)
    normalized = normalize_code(code)
    coupon = (
        db.query(Coupon)
        .filter(Coupon.cafe_id == cafe_id, Coupon.code == normalized)
        .first()
    )
    if coupon is None or not coupon.is_active:
        raise ValidationError(f"Invalid coupon code: {normalized}")

    valid_from = _as_aware(coupon.valid_from)
    valid_until = _as_aware(coupon.valid_until)
    if valid_from is not None and now < valid_from:
        raise ValidationError(f"Coupon {normalized} is not valid yet")
    if valid_until is not None and now > valid_until:
        raise ValidationError(f"Coupon {normalized} has expired")
    if coupon.max_uses is not None and coupon.uses_count >= coupon.max_uses:
        raise ValidationError(f"Coupon {normalized} has reached its usage limit")
    if coupon.min_order_amount is not None and subtotal < Decimal(coupon.min_order_amount):
        raise ValidationError(
            f"Coupon {normalized} requires a minimum order of {Decimal(coupon.min_order_amount):.2f}"
        )
    return coupon


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Discount for ``subtotal``. Never more than the subtotal itself."""
    value = Decimal(coupon.discount_value or 0)
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = (subtotal * value / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
        if coupon.max_discount_amount is not None:
            discount = min(discount, Decimal(coupon.max_discount_amount))
    else:
        discount = value
    return max(Decimal("0.00"), min(discount, subtotal)).quantize(CENT)


def record_redemption(
    db: Session,
    coupon: Coupon,
    booking_id: str,
    customer_phone: Optional[str],
    discount_amount: Decimal,
) -> CouponUsage:
    """Bump ``uses_count`` under the usage cap and append a usage row.

    Runs inside the caller's transaction.
    """
    stmt = (
        update(Coupon)
        .where(Coupon.id == coupon.id)
        .where(or_(Coupon.max_uses.is_(None), Coupon.uses_count < Coupon.max_uses))
        .values(uses_count=Coupon.uses_count + 1)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount != 1:
        raise ValidationError(f"Coupon {coupon.code} has reached its usage limit")
    db.refresh(coupon)

    usage = CouponUsage(
        coupon_id=coupon.id,
        booking_id=booking_id,
        customer_phone=customer_phone,
        discount_amount=discount_amount,
    )
    db.add(usage)
    db.flush()
    return usage


def list_customers(db: Session, cafe_id: int) -> List[Dict[str, Any]]:
    """Repeat customers by phone number, biggest spenders first.

    Used to pick who gets a coupon. Bookings without a phone are skipped;
    the most recent booking's name wins.
    """
    from cafebook.models.booking import Booking, BookingStatus

    bookings = (
        db.query(Booking)
        .filter(
            Booking.cafe_id == cafe_id,
            Booking.status != BookingStatus.CANCELLED.value,
            Booking.customer_phone.isnot(None),
        )
        .order_by(Booking.booking_date, Booking.start_time)
        .all()
    )

    customers: Dict[str, Dict[str, Any]] = {}
    for booking in bookings:
        phone = booking.customer_phone.strip()
        if not phone:
            continue
        entry = customers.setdefault(phone, {
            "id": phone,
            "phone": phone,
            "name": None,
            "visits": 0,
            "total_spent": Decimal("0.00"),
            "last_visit": None,
        })
        entry["visits"] += 1
        entry["total_spent"] += Decimal(booking.total_amount or 0)
        entry["last_visit"] = booking.booking_date
        entry["name"] = booking.customer_name or entry["name"] or "Unknown"

    result = sorted(customers.values(), key=lambda c: c["total_spent"], reverse=True)
    for entry in result:
        entry["total_spent"] = float(entry["total_spent"])
        entry["last_visit"] = entry["last_visit"].isoformat()
    return result
