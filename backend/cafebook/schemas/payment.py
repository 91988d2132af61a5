"""UroPay and email request schemas.

Required fields are optional at the schema level so the services can answer
with the exact "Missing required fields" messages clients rely on.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateOrderRequest(BaseModel):
    booking_id: Optional[str] = Field(None, alias="bookingId")
    amount: Optional[Decimal] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    cafe_name: Optional[str] = Field(None, alias="cafeName")

    model_config = ConfigDict(populate_by_name=True)


class VerifyPaymentRequest(BaseModel):
    booking_id: Optional[str] = Field(None, alias="bookingId")
    reference_number: Optional[str] = Field(None, alias="referenceNumber")

    model_config = ConfigDict(populate_by_name=True)


class EmailRequest(BaseModel):
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
