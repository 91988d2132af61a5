"""Café and pricing schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cafebook.models.cafe import ConsoleType


class CafeResponse(BaseModel):
    id: int
    name: str
    slug: str
    address: Optional[str] = None
    city: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    hourly_price: Optional[float] = None
    cover_url: Optional[str] = None
    opening_hours: Optional[Dict[str, Any]] = None
    ps5_count: int = 0
    ps4_count: int = 0
    xbox_count: int = 0
    pc_count: int = 0
    pool_count: int = 0
    arcade_count: int = 0
    snooker_count: int = 0
    vr_count: int = 0
    steering_wheel_count: int = 0
    is_active: bool
    is_featured: bool
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CafeUpdate(BaseModel):
    """Fields an owner may edit. Unknown fields are rejected."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    hourly_price: Optional[Decimal] = Field(None, ge=0)
    cover_url: Optional[str] = None
    opening_hours: Optional[Dict[str, Any]] = None
    ps5_count: Optional[int] = Field(None, ge=0)
    ps4_count: Optional[int] = Field(None, ge=0)
    xbox_count: Optional[int] = Field(None, ge=0)
    pc_count: Optional[int] = Field(None, ge=0)
    pool_count: Optional[int] = Field(None, ge=0)
    arcade_count: Optional[int] = Field(None, ge=0)
    snooker_count: Optional[int] = Field(None, ge=0)
    vr_count: Optional[int] = Field(None, ge=0)
    steering_wheel_count: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(extra="forbid")


class OwnerCafeUpdateRequest(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    updates: CafeUpdate

    model_config = ConfigDict(populate_by_name=True)


class CafeCreate(CafeUpdate):
    """Admin café creation."""

    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200, pattern=r"^[a-z0-9-]+$")
    owner_id: Optional[int] = None
    is_featured: bool = False


class PricingCell(BaseModel):
    console_type: ConsoleType
    quantity: int = Field(..., ge=1, le=4)
    duration_minutes: int
    price: Optional[Decimal] = Field(None, ge=0)


class PricingCellResponse(BaseModel):
    id: int
    console_type: str
    quantity: int
    duration_minutes: int
    price: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class PricingUpdateRequest(BaseModel):
    cafe_id: int = Field(..., alias="cafeId")
    cells: List[PricingCell]

    model_config = ConfigDict(populate_by_name=True)
