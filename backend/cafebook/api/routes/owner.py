"""Owner dashboard API routes."""

import logging
from datetime import date, datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from cafebook.core.errors import AuthorizationError, STATUS_FORBIDDEN, ValidationError
from cafebook.core.rate_limit import limiter
from cafebook.core.rbac import RequireOwner, check_owner_access, ensure_cafe_access
from cafebook.core.security import OwnerSession, create_session_token, verify_password
from cafebook.db.session import DbSession
from cafebook.models.user import Profile
from cafebook.schemas.booking import BookingOrderResponse, BookingResponse, WalkInCreate
from cafebook.schemas.cafe import (
    CafeResponse,
    OwnerCafeUpdateRequest,
    PricingCellResponse,
    PricingUpdateRequest,
)
from cafebook.schemas.owner import (
    AddItemsRequest,
    CashCollectRequest,
    CashDrawerRecordResponse,
    CashVerifyRequest,
    CouponCustomerResponse,
    CouponResponse,
    CouponToggle,
    CouponUpsert,
    CouponUsageResponse,
    InventoryItemResponse,
    InventoryItemUpsert,
    MembershipPlanResponse,
    MembershipPlanUpsert,
    OwnerLoginRequest,
    OwnerVerifyRequest,
    ReportRequest,
    SubscriptionCreate,
    SubscriptionResponse,
)
from cafebook.services import coupon_service, pricing_service, report_service
from cafebook.services.billing_service import BillingService
from cafebook.services.booking_service import BookingRequest, BookingService, TicketSelection
from cafebook.services.cash_drawer_service import CashDrawerService
from cafebook.services.live_status_service import live_status
from cafebook.services.membership_service import MembershipService
from cafebook.services.notification_service import (
    EmailKind,
    NotificationDispatcher,
    get_notification_dispatcher,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Notifier = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


# ==================== SESSION ====================

@router.post("/login")
@limiter.limit("10/minute")
def owner_login(
    request: Request,
    body: OwnerLoginRequest,
    db: DbSession,
    background_tasks: BackgroundTasks,
    notifier: Notifier,
):
    """Exchange username and password for a 24h dashboard session."""
    profile = db.query(Profile).filter(Profile.username == body.username.strip()).first()
    if (
        profile is None
        or not profile.is_active
        or not profile.password_hash
        or not verify_password(body.password, profile.password_hash)
    ):
        logger.info(f"Failed owner login for {body.username!r}")
        raise AuthorizationError("Invalid username or password")

    if not check_owner_access(db, profile.id).is_owner:
        raise AuthorizationError("Owner access required", status_code=STATUS_FORBIDDEN)

    session = OwnerSession(user_id=profile.id, username=profile.username, issued_at=datetime.now(timezone.utc))
    token = create_session_token(session)
    logger.info(f"Owner {profile.username} logged in")

    if profile.email:
        background_tasks.add_task(
            notifier.notify_quietly,
            EmailKind.LOGIN_ALERT,
            {
                "email": profile.email,
                "name": profile.name,
                "loginTime": session.issued_at.strftime("%d %b %Y, %I:%M %p UTC"),
                "device": request.headers.get("user-agent"),
            },
        )

    return {
        "userId": profile.id,
        "username": profile.username,
        "token": token,
        "expiresAt": session.expires_at.isoformat(),
    }


@router.post("/verify")
def verify_owner(body: OwnerVerifyRequest, db: DbSession):
    """Resolve a user's dashboard access. Lookup failures deny."""
    if body.user_id is None:
        raise ValidationError("userId is required")
    check = check_owner_access(db, body.user_id)
    return {"role": check.role.value, "isOwner": check.is_owner}


# ==================== CAFE ====================

@router.get("/cafes")
def get_owner_cafe(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    cafe = ensure_cafe_access(db, owner, cafe_id)
    return {"cafe": CafeResponse.model_validate(cafe)}


@router.put("/cafes")
def update_owner_cafe(body: OwnerCafeUpdateRequest, owner: RequireOwner, db: DbSession):
    cafe = ensure_cafe_access(db, owner, body.cafe_id)
    updates = body.updates.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("updates must contain at least one field")
    for field, value in updates.items():
        setattr(cafe, field, value)
    db.commit()
    logger.info(f"Cafe {cafe.id} updated by {owner.username}: {sorted(updates)}")
    return {"success": True}


@router.get("/pricing", response_model=list[PricingCellResponse])
def get_pricing(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return pricing_service.list_pricing(db, cafe_id)


@router.put("/pricing")
def update_pricing(body: PricingUpdateRequest, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    saved = pricing_service.upsert_pricing(db, body.cafe_id, [c.model_dump() for c in body.cells])
    db.commit()
    return {"success": True, "saved": len(saved)}


# ==================== BOOKINGS ====================

@router.get("/bookings", response_model=list[BookingResponse])
def list_bookings(
    owner: RequireOwner,
    db: DbSession,
    cafe_id: int = Query(..., alias="cafeId"),
    booking_date: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = Query(None),
):
    ensure_cafe_access(db, owner, cafe_id)
    return BookingService(db).list_cafe_bookings(cafe_id, booking_date, status)


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(booking_id: str, owner: RequireOwner, db: DbSession):
    service = BookingService(db)
    booking = service.get_booking(booking_id)
    ensure_cafe_access(db, owner, booking.cafe_id)
    return service.complete_booking(booking_id)


@router.post("/bookings/{booking_id}/start", response_model=BookingResponse)
def start_booking(booking_id: str, owner: RequireOwner, db: DbSession):
    service = BookingService(db)
    booking = service.get_booking(booking_id)
    ensure_cafe_access(db, owner, booking.cafe_id)
    return service.start_booking(booking_id)


@router.post("/bookings/{booking_id}/items", response_model=BookingResponse)
def add_booking_items(booking_id: str, body: AddItemsRequest, owner: RequireOwner, db: DbSession):
    """Sell food and drink against a running session."""
    booking = BookingService(db).get_booking(booking_id)
    ensure_cafe_access(db, owner, booking.cafe_id)
    return BillingService(db).add_items(
        booking_id, [(line.inventory_item_id, line.quantity) for line in body.items]
    )


@router.get("/bookings/{booking_id}/items", response_model=list[BookingOrderResponse])
def list_booking_items(booking_id: str, owner: RequireOwner, db: DbSession):
    booking = BookingService(db).get_booking(booking_id)
    ensure_cafe_access(db, owner, booking.cafe_id)
    return BillingService(db).list_orders(booking_id)


@router.get("/live-status")
def get_live_status(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    cafe = ensure_cafe_access(db, owner, cafe_id)
    # Booking times are café wall clock
    return live_status(db, cafe, datetime.now())


@router.post("/walk-in", response_model=BookingResponse, status_code=201)
def create_walk_in(body: WalkInCreate, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    return BookingService(db).create_walk_in(BookingRequest(
        cafe_id=body.cafe_id,
        booking_date=body.booking_date,
        start_time=body.start_time,
        duration_minutes=body.duration_minutes,
        selections=[TicketSelection(console=t.console.value, quantity=t.quantity) for t in body.tickets],
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        coupon_code=body.coupon_code,
        payment_mode=body.payment_mode.value,
    ))


# ==================== COUPONS ====================

@router.get("/coupons", response_model=list[CouponResponse])
def list_coupons(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return coupon_service.list_coupons(db, cafe_id)


@router.post("/coupons")
def upsert_coupon(body: CouponUpsert, owner: RequireOwner, db: DbSession):
    """Create a coupon, or update it when ``id`` is present."""
    if body.id is not None:
        cafe_id = coupon_service.get_coupon(db, body.id).cafe_id
    elif body.cafe_id is not None:
        cafe_id = body.cafe_id
    else:
        raise ValidationError("cafeId is required")
    ensure_cafe_access(db, owner, cafe_id)

    data = body.model_dump(exclude_unset=True, exclude={"id", "cafe_id"})
    coupon = coupon_service.upsert_coupon(db, cafe_id, data, coupon_id=body.id)
    db.commit()
    return {"success": True, "id": coupon.id}


@router.patch("/coupons")
def toggle_coupon(body: CouponToggle, owner: RequireOwner, db: DbSession):
    coupon = coupon_service.get_coupon(db, body.id)
    ensure_cafe_access(db, owner, coupon.cafe_id)
    coupon_service.set_coupon_active(db, coupon, body.is_active)
    db.commit()
    return {"success": True}


@router.delete("/coupons")
def delete_coupon(owner: RequireOwner, db: DbSession, coupon_id: Optional[int] = Query(None, alias="id")):
    if coupon_id is None:
        raise ValidationError("id required")
    coupon = coupon_service.get_coupon(db, coupon_id)
    ensure_cafe_access(db, owner, coupon.cafe_id)
    coupon_service.delete_coupon(db, coupon)
    db.commit()
    return {"success": True}


@router.get("/coupons/customers", response_model=list[CouponCustomerResponse])
def coupon_customers(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return coupon_service.list_customers(db, cafe_id)


@router.get("/coupons/usage", response_model=list[CouponUsageResponse])
def coupon_usage(owner: RequireOwner, db: DbSession, coupon_id: int = Query(..., alias="couponId")):
    coupon = coupon_service.get_coupon(db, coupon_id)
    ensure_cafe_access(db, owner, coupon.cafe_id)
    return coupon_service.list_usage(db, coupon.id)


# ==================== MEMBERSHIPS ====================

@router.get("/membership-plans", response_model=list[MembershipPlanResponse])
def list_membership_plans(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return MembershipService(db).list_plans(cafe_id)


@router.post("/membership-plans")
def upsert_membership_plan(body: MembershipPlanUpsert, owner: RequireOwner, db: DbSession):
    service = MembershipService(db)
    if body.id is not None:
        cafe_id = service.get_plan(body.id).cafe_id
    elif body.cafe_id is not None:
        cafe_id = body.cafe_id
    else:
        raise ValidationError("cafeId is required")
    ensure_cafe_access(db, owner, cafe_id)

    data = body.model_dump(exclude_unset=True, exclude={"id", "cafe_id"})
    if data.get("console_type") is not None:
        data["console_type"] = data["console_type"].value
    plan = service.upsert_plan(cafe_id, data, plan_id=body.id)
    db.commit()
    return {"success": True, "id": plan.id}


@router.delete("/membership-plans")
def delete_membership_plan(owner: RequireOwner, db: DbSession, plan_id: Optional[int] = Query(None, alias="id")):
    if plan_id is None:
        raise ValidationError("id required")
    service = MembershipService(db)
    plan = service.get_plan(plan_id)
    ensure_cafe_access(db, owner, plan.cafe_id)
    service.delete_plan(plan)
    db.commit()
    return {"success": True}


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
def list_subscriptions(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return MembershipService(db).list_subscriptions(cafe_id)


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
def create_subscription(body: SubscriptionCreate, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    subscription = MembershipService(db).create_subscription(
        cafe_id=body.cafe_id,
        plan_id=body.membership_plan_id,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        payment_mode=body.payment_mode,
        amount_paid=body.amount_paid,
        purchase_date=body.purchase_date,
    )
    db.commit()
    return subscription


@router.delete("/subscriptions")
def delete_subscription(
    owner: RequireOwner, db: DbSession, subscription_id: Optional[int] = Query(None, alias="id")
):
    if subscription_id is None:
        raise ValidationError("id required")
    service = MembershipService(db)
    subscription = service.get_subscription(subscription_id)
    ensure_cafe_access(db, owner, subscription.cafe_id)
    service.delete_subscription(subscription)
    db.commit()
    return {"success": True}


# ==================== INVENTORY ====================

@router.get("/inventory", response_model=list[InventoryItemResponse])
def list_inventory(
    owner: RequireOwner,
    db: DbSession,
    cafe_id: int = Query(..., alias="cafeId"),
    available_only: bool = Query(False, alias="availableOnly"),
):
    ensure_cafe_access(db, owner, cafe_id)
    return BillingService(db).list_items(cafe_id, available_only=available_only)


@router.post("/inventory", response_model=InventoryItemResponse)
def upsert_inventory_item(body: InventoryItemUpsert, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    item = BillingService(db).upsert_item(body.cafe_id, body.model_dump(exclude={"cafe_id"}))
    db.commit()
    db.refresh(item)
    return item


@router.delete("/inventory")
def delete_inventory_item(owner: RequireOwner, db: DbSession, item_id: Optional[int] = Query(None, alias="id")):
    if item_id is None:
        raise ValidationError("id required")
    service = BillingService(db)
    item = service.get_item(item_id)
    ensure_cafe_access(db, owner, item.cafe_id)
    service.delete_item(item)
    db.commit()
    return {"success": True}


# ==================== REPORTS ====================

@router.post("/reports")
def period_report(body: ReportRequest, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    return report_service.compare_periods(
        db, body.cafe_id, body.start_date, body.end_date, body.prev_start_date, body.prev_end_date
    )


@router.get("/reports/peak-hours")
def peak_hours_report(owner: RequireOwner, db: DbSession, cafe_id: int = Query(..., alias="cafeId")):
    ensure_cafe_access(db, owner, cafe_id)
    return report_service.peak_hours(db, cafe_id, date.today())


@router.get("/reports/daily")
def daily_report(
    owner: RequireOwner,
    db: DbSession,
    cafe_id: int = Query(..., alias="cafeId"),
    report_date: Optional[date] = Query(None, alias="date"),
):
    ensure_cafe_access(db, owner, cafe_id)
    return report_service.daily_summary(db, cafe_id, report_date or date.today())


# ==================== CASH DRAWER ====================

def _utc_today() -> date:
    # Drawer days follow the UTC booking timestamps
    return datetime.now(timezone.utc).date()


def _status_payload(status: dict) -> dict:
    return {
        "record": CashDrawerRecordResponse.model_validate(status["record"]),
        "openingBalance": float(status["opening_balance"]),
        "cashSalesToday": float(status["cash_sales_today"]),
        "cashSalesAfterCollection": float(status["cash_sales_after_collection"]),
        "expectedInDrawer": float(status["expected_in_drawer"]),
        "hasCollected": status["has_collected"],
        "expectedClosing": float(status["expected_closing"]),
    }


@router.get("/cash-drawer")
def get_cash_drawer(
    owner: RequireOwner,
    db: DbSession,
    cafe_id: int = Query(..., alias="cafeId"),
    record_date: Optional[date] = Query(None, alias="date"),
):
    ensure_cafe_access(db, owner, cafe_id)
    status = CashDrawerService(db).get_status(cafe_id, record_date or _utc_today())
    db.commit()
    return _status_payload(status)


@router.get("/cash-drawer/history", response_model=list[CashDrawerRecordResponse])
def cash_drawer_history(
    owner: RequireOwner,
    db: DbSession,
    cafe_id: int = Query(..., alias="cafeId"),
    limit: int = Query(7, ge=1, le=90),
):
    ensure_cafe_access(db, owner, cafe_id)
    return CashDrawerService(db).history(cafe_id, limit=limit)


@router.post("/cash-drawer/collect", response_model=CashDrawerRecordResponse)
def collect_cash(body: CashCollectRequest, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    record = CashDrawerService(db).record_collection(
        body.cafe_id,
        body.record_date or _utc_today(),
        body.amount_collected,
        body.change_left,
        collected_by=owner.username,
    )
    db.commit()
    return record


@router.post("/cash-drawer/verify", response_model=CashDrawerRecordResponse)
def verify_closing(body: CashVerifyRequest, owner: RequireOwner, db: DbSession):
    ensure_cafe_access(db, owner, body.cafe_id)
    record = CashDrawerService(db).verify_closing(
        body.cafe_id,
        body.record_date or _utc_today(),
        actual_closing=body.actual_closing,
        discrepancy_note=body.discrepancy_note,
    )
    db.commit()
    return record
