"""Booking schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cafebook.models.booking import PaymentMode
from cafebook.models.cafe import ConsoleType


class TicketSelectionIn(BaseModel):
    console: ConsoleType
    quantity: int = Field(..., ge=1)


class BookingCreate(BaseModel):
    """Public booking request. Accepts camelCase or snake_case keys."""

    cafe_id: int = Field(..., alias="cafeId")
    booking_date: date = Field(..., alias="bookingDate")
    start_time: str = Field(..., alias="startTime", min_length=1)
    duration_minutes: int = Field(60, alias="durationMinutes")
    tickets: List[TicketSelectionIn] = Field(default_factory=list)
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    coupon_code: Optional[str] = Field(None, alias="couponCode")

    model_config = ConfigDict(populate_by_name=True)


class BookingCancelRequest(BaseModel):
    """Contact details proving the caller made the booking."""

    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    customer_email: Optional[str] = Field(None, alias="customerEmail")

    model_config = ConfigDict(populate_by_name=True)


class WalkInCreate(BookingCreate):
    payment_mode: PaymentMode = Field(PaymentMode.CASH, alias="paymentMode")


class BookingItemResponse(BaseModel):
    id: int
    console_type: str
    title: str
    quantity: int
    price: float

    model_config = ConfigDict(from_attributes=True)


class BookingOrderResponse(BaseModel):
    id: int
    inventory_item_id: Optional[int] = None
    item_name: str
    quantity: int
    unit_price: float
    total_price: float
    ordered_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    id: str
    cafe_id: int
    user_id: Optional[int] = None
    booking_date: date
    start_time: time
    duration_minutes: int
    subtotal_amount: float
    discount_amount: float
    total_amount: float
    coupon_id: Optional[int] = None
    status: str
    source: str
    payment_mode: Optional[str] = None
    uropay_order_id: Optional[str] = None
    upi_reference: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[BookingItemResponse] = []
    orders: List[BookingOrderResponse] = []

    model_config = ConfigDict(from_attributes=True)
