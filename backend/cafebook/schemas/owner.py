"""Owner dashboard schemas: login, coupons, memberships, cash drawer, billing, reports."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from cafebook.models.cafe import ConsoleType


# Auth

class OwnerLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class OwnerVerifyRequest(BaseModel):
    user_id: Optional[int] = Field(None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)


# Coupons

class CouponUpsert(BaseModel):
    """Create when ``id`` is absent, otherwise update the given fields."""

    id: Optional[int] = None
    cafe_id: Optional[int] = Field(None, alias="cafeId")
    code: Optional[str] = Field(None, max_length=50)
    discount_type: Optional[Literal["percentage", "flat"]] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(populate_by_name=True)


class CouponToggle(BaseModel):
    id: int
    is_active: bool


class CouponResponse(BaseModel):
    id: int
    cafe_id: int
    code: str
    discount_type: str
    discount_value: float
    max_discount_amount: Optional[float] = None
    min_order_amount: Optional[float] = None
    max_uses: Optional[int] = None
    uses_count: int
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CouponUsageResponse(BaseModel):
    id: int
    coupon_id: int
    booking_id: Optional[str] = None
    customer_phone: Optional[str] = None
    discount_amount: float
    used_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Memberships

class MembershipPlanUpsert(BaseModel):
    id: Optional[int] = None
    cafe_id: Optional[int] = Field(None, alias="cafeId")
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    hours: Optional[Decimal] = Field(None, ge=0)
    validity_days: Optional[int] = Field(None, ge=1)
    plan_type: Optional[Literal["day_pass", "hourly_bundle"]] = None
    console_type: Optional[ConsoleType] = None
    player_count: Optional[Literal["single", "double"]] = None

    model_config = ConfigDict(populate_by_name=True)


class MembershipPlanResponse(BaseModel):
    id: int
    cafe_id: int
    name: str
    description: Optional[str] = None
    price: float
    hours: float
    validity_days: int
    plan_type: str
    console_type: Optional[str] = None
    player_count: str

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCreate(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    membership_plan_id: int = Field(..., alias="membershipPlanId")
    customer_name: str = Field(..., alias="customerName", min_length=1)
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    payment_mode: Optional[Literal["cash", "upi", "online"]] = Field(None, alias="paymentMode")
    amount_paid: Optional[Decimal] = Field(None, alias="amountPaid", ge=0)
    purchase_date: Optional[datetime] = Field(None, alias="purchaseDate")

    model_config = ConfigDict(populate_by_name=True)


class SubscriptionResponse(BaseModel):
    id: int
    cafe_id: int
    membership_plan_id: int
    customer_name: str
    customer_phone: Optional[str] = None
    hours_purchased: float
    hours_remaining: float
    amount_paid: float
    payment_mode: Optional[str] = None
    purchase_date: datetime
    expiry_date: datetime
    status: str

    model_config = ConfigDict(from_attributes=True)


# Cash drawer

class CashCollectRequest(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    record_date: Optional[date] = Field(None, alias="date")
    amount_collected: Decimal = Field(..., alias="amountCollected", ge=0)
    change_left: Decimal = Field(..., alias="changeLeft", ge=0)

    model_config = ConfigDict(populate_by_name=True)


class CashVerifyRequest(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    record_date: Optional[date] = Field(None, alias="date")
    actual_closing: Optional[Decimal] = Field(None, alias="actualClosing", ge=0)
    discrepancy_note: Optional[str] = Field(None, alias="discrepancyNote")

    model_config = ConfigDict(populate_by_name=True)


class CashDrawerRecordResponse(BaseModel):
    id: int
    cafe_id: int
    record_date: date
    opening_balance: float
    amount_collected: Optional[float] = None
    change_left: Optional[float] = None
    collection_time: Optional[datetime] = None
    collected_by: Optional[str] = None
    expected_closing: Optional[float] = None
    actual_closing: Optional[float] = None
    has_discrepancy: bool
    discrepancy_amount: Optional[float] = None
    discrepancy_note: Optional[str] = None
    closing_verified: bool
    closing_verified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CouponCustomerResponse(BaseModel):
    id: str
    name: str
    phone: str
    visits: int
    total_spent: float
    last_visit: date


# Billing

class InventoryItemUpsert(BaseModel):
    """Create when ``id`` is absent, otherwise update the given fields."""

    id: Optional[int] = None
    cafe_id: int = Field(..., alias="cafeId")
    name: Optional[str] = Field(None, max_length=200)
    category: Optional[Literal["snacks", "cold_drinks", "hot_drinks", "combo"]] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None

    model_config = ConfigDict(populate_by_name=True)


class InventoryItemResponse(BaseModel):
    id: int
    cafe_id: int
    name: str
    category: str
    price: float
    stock_quantity: int
    is_available: bool

    model_config = ConfigDict(from_attributes=True)


class CartLine(BaseModel):
    inventory_item_id: int = Field(..., alias="inventoryItemId")
    quantity: int = Field(..., ge=1)

    model_config = ConfigDict(populate_by_name=True)


class AddItemsRequest(BaseModel):
    items: list[CartLine] = Field(..., min_length=1)


# Reports

class ReportRequest(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    prev_start_date: Optional[date] = Field(None, alias="prevStartDate")
    prev_end_date: Optional[date] = Field(None, alias="prevEndDate")

    model_config = ConfigDict(populate_by_name=True)
