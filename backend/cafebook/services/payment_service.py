"""Payment orchestration between bookings and the UroPay gateway.

Booking status only moves pending -> confirmed here, through a single
status-guarded UPDATE. Whichever request's UPDATE hits the row is the one
that confirmed it, and only that request sends the confirmation email.
A cancelled booking is never revived.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafebook.core.config import settings
from cafebook.core.errors import AuthorizationError, NotFoundError, ValidationError
from cafebook.models.booking import Booking, BookingStatus, PaymentMode
from cafebook.models.operations import PaymentLog
from cafebook.services.booking_service import booking_email_data
from cafebook.services.notification_service import EmailKind, NotificationDispatcher
from cafebook.services.uropay_client import (
    RemoteOrder,
    RemoteOrderStatus,
    UroPayClient,
    verify_webhook_signature,
)

logger = logging.getLogger("payments")

DEFAULT_CUSTOMER_NAME = "Guest"
DEFAULT_CUSTOMER_EMAIL = "guest@example.com"


@dataclass
class PollResult:
    order_status: str
    uropay_order_id: str
    transitioned: bool
    booking_status: Optional[str] = None


@dataclass
class WebhookResult:
    processed: bool
    duplicate: bool = False


class PaymentService:
    def __init__(
        self,
        db: Session,
        gateway: UroPayClient,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.notifier = notifier

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def create_order(
        self,
        booking_id: str,
        amount: Decimal,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        cafe_name: Optional[str] = None,
    ) -> RemoteOrder:
        """Open a remote order for a pending booking.

        Nothing is stored unless the gateway hands back an order id, so a
        failed attempt can simply be retried.
        """
        if not booking_id:
            raise ValidationError("Missing required fields: bookingId, amount")
        if amount is None or Decimal(amount) <= 0:
            raise ValidationError("Missing required fields: bookingId, amount")

        booking = self._get_booking(booking_id)
        if booking.status != BookingStatus.PENDING.value:
            raise ValidationError(f"Booking is {booking.status}, payment can only be started for pending bookings")
        if Decimal(amount) != Decimal(booking.total_amount):
            raise ValidationError(f"Amount does not match booking total {booking.total_amount}")

        order = await self.gateway.create_order(
            booking_id=booking.id,
            amount=Decimal(amount),
            customer_name=customer_name or DEFAULT_CUSTOMER_NAME,
            customer_email=customer_email or DEFAULT_CUSTOMER_EMAIL,
            cafe_name=cafe_name or (booking.cafe.name if booking.cafe else None),
        )

        booking.uropay_order_id = order.uropay_order_id
        booking.payment_mode = PaymentMode.UPI.value
        self.db.commit()
        return order

    def _confirm_if_pending(self, booking_id: str, **values: Any) -> bool:
        """The compare-and-swap. True only for the call that made the transition."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.PENDING.value)
            .values(
                status=BookingStatus.CONFIRMED.value,
                payment_mode=PaymentMode.UPI.value,
                confirmed_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        transitioned = self.db.execute(stmt).rowcount == 1
        self.db.commit()
        return transitioned

    async def _after_transition(self, booking_id: str) -> Booking:
        booking = self._get_booking(booking_id)
        self.db.refresh(booking)
        logger.info(f"Booking {booking_id} confirmed by payment {booking.uropay_order_id}")
        if self.notifier is not None and booking.customer_email:
            await self.notifier.notify_quietly(EmailKind.BOOKING_CONFIRMATION, booking_email_data(booking))
        return booking

    async def poll_status(self, booking_id: Optional[str] = None, order_id: Optional[str] = None) -> PollResult:
        if not order_id and not booking_id:
            raise ValidationError("Missing orderId or bookingId parameter")

        booking = None
        if booking_id:
            booking = self._get_booking(booking_id)
            if not booking.uropay_order_id:
                raise NotFoundError("No payment order found for this booking")
            if order_id and order_id != booking.uropay_order_id:
                raise ValidationError("orderId does not belong to this booking")
            order_id = booking.uropay_order_id

        remote = await self.gateway.get_order_status(order_id)

        transitioned = False
        if remote.order_status == RemoteOrderStatus.COMPLETED.value and booking is not None:
            transitioned = self._confirm_if_pending(booking.id)
            if transitioned:
                booking = await self._after_transition(booking.id)
            else:
                self.db.refresh(booking)

        return PollResult(
            order_status=remote.order_status,
            uropay_order_id=remote.uropay_order_id,
            transitioned=transitioned,
            booking_status=booking.status if booking is not None else None,
        )

    async def verify_manual(self, booking_id: str, reference_number: str) -> Dict[str, Any]:
        """Customer-entered UPI reference: report it to the gateway, then confirm."""
        if not booking_id or not (reference_number or "").strip():
            raise ValidationError("Missing required fields: bookingId, referenceNumber")

        booking = self._get_booking(booking_id)
        if booking.status == BookingStatus.CONFIRMED.value:
            return {"message": "Payment already verified", "status": booking.status, "transitioned": False}
        if booking.status != BookingStatus.PENDING.value:
            raise ValidationError(f"Booking is {booking.status} and cannot be paid")
        if not booking.uropay_order_id:
            raise NotFoundError("No payment order found for this booking")

        reference = reference_number.strip()
        await self.gateway.update_order(booking.uropay_order_id, reference, RemoteOrderStatus.COMPLETED)

        transitioned = self._confirm_if_pending(booking.id, upi_reference=reference)
        if transitioned:
            booking = await self._after_transition(booking.id)
        else:
            self.db.refresh(booking)
        return {"message": "Payment verified successfully", "status": booking.status, "transitioned": transitioned}

    def record_webhook(
        self,
        raw_body: bytes,
        signature: Optional[str],
        webhook_id: Optional[str],
        environment: Optional[str],
    ) -> WebhookResult:
        """Log a payment notification for reconciliation.

        The payload carries no order id, so bookings are confirmed by polling,
        not here.
        """
        secret = settings.uropay_webhook_secret
        if secret:
            if not signature or not verify_webhook_signature(raw_body, signature, secret):
                logger.error(f"Invalid webhook signature for webhook {webhook_id}")
                raise AuthorizationError("Invalid signature")

        try:
            payload = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Invalid payload")
        if not isinstance(payload, dict):
            raise ValidationError("Invalid payload")

        try:
            amount = Decimal(str(payload["amount"])) if payload.get("amount") is not None else None
        except InvalidOperation:
            raise ValidationError("Invalid payload: amount")

        logger.info(
            f"UroPay payment received: ref={payload.get('referenceNumber')} amount={amount} "
            f"from={payload.get('from')} webhook={webhook_id} env={environment}"
        )

        entry = PaymentLog(
            webhook_id=webhook_id or None,
            environment=environment,
            reference_number=payload.get("referenceNumber"),
            amount=amount,
            payer_name=payload.get("from"),
            vpa=payload.get("vpa"),
            raw_payload=raw_body.decode("utf-8", errors="replace"),
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Duplicate webhook {webhook_id}, skipping")
            return WebhookResult(processed=True, duplicate=True)
        return WebhookResult(processed=True)
