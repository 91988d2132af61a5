"""UroPay UPI payment routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from cafebook.core.rate_limit import limiter
from cafebook.db.session import DbSession
from cafebook.schemas.payment import CreateOrderRequest, VerifyPaymentRequest
from cafebook.services.notification_service import NotificationDispatcher, get_notification_dispatcher
from cafebook.services.payment_service import PaymentService
from cafebook.services.uropay_client import UroPayClient, get_payment_gateway

logger = logging.getLogger("payments")

router = APIRouter()

Gateway = Annotated[UroPayClient, Depends(get_payment_gateway)]
Notifier = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


@router.post("/create-order")
@limiter.limit("10/minute")
async def create_order(request: Request, body: CreateOrderRequest, db: DbSession, gateway: Gateway):
    order = await PaymentService(db, gateway).create_order(
        booking_id=body.booking_id,
        amount=body.amount,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        cafe_name=body.cafe_name,
    )
    return {
        "success": True,
        "uroPayOrderId": order.uropay_order_id,
        "qrCode": order.qr_code,
        "upiString": order.upi_string,
        "amountInRupees": order.amount_in_rupees,
    }


@router.get("/status")
@limiter.limit("60/minute")
async def payment_status(
    request: Request,
    db: DbSession,
    gateway: Gateway,
    notifier: Notifier,
    order_id: Optional[str] = Query(None, alias="orderId"),
    booking_id: Optional[str] = Query(None, alias="bookingId"),
):
    """Poll the gateway. A completed order confirms its pending booking once."""
    result = await PaymentService(db, gateway, notifier).poll_status(booking_id=booking_id, order_id=order_id)
    return {
        "success": True,
        "orderStatus": result.order_status,
        "uroPayOrderId": result.uropay_order_id,
        "transitioned": result.transitioned,
        "bookingStatus": result.booking_status,
    }


@router.post("/verify")
@limiter.limit("10/minute")
async def verify_payment(
    request: Request,
    body: VerifyPaymentRequest,
    db: DbSession,
    gateway: Gateway,
    notifier: Notifier,
):
    result = await PaymentService(db, gateway, notifier).verify_manual(body.booking_id, body.reference_number)
    return {"success": True, **result}


@router.post("/webhook")
@limiter.limit("120/minute")
async def payment_webhook(
    request: Request,
    db: DbSession,
    gateway: Gateway,
    x_uropay_environment: Optional[str] = Header(None),
    x_uropay_webhook_id: Optional[str] = Header(None),
    x_uropay_signature: Optional[str] = Header(None),
):
    raw_body = await request.body()
    result = PaymentService(db, gateway).record_webhook(
        raw_body,
        signature=x_uropay_signature,
        webhook_id=x_uropay_webhook_id,
        environment=x_uropay_environment,
    )
    if result.duplicate:
        return {"success": True, "message": "Already processed"}
    return {"success": True, "message": "Webhook processed"}
