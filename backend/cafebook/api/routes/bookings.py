"""Customer booking routes."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request

from cafebook.core.errors import AuthorizationError, STATUS_FORBIDDEN
from cafebook.core.rate_limit import limiter
from cafebook.core.rbac import OptionalOwner, can_manage_cafe
from cafebook.db.session import DbSession
from cafebook.schemas.booking import BookingCancelRequest, BookingCreate, BookingResponse
from cafebook.services.booking_service import BookingRequest, BookingService, TicketSelection, contact_matches
from cafebook.services.notification_service import NotificationDispatcher, get_notification_dispatcher

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=201)
@limiter.limit("20/minute")
def create_booking(request: Request, body: BookingCreate, db: DbSession):
    """Create a pending online booking.

    Capacity is re-checked at write time; the booking stays pending until
    payment confirms it.
    """
    return BookingService(db).create_booking(BookingRequest(
        cafe_id=body.cafe_id,
        booking_date=body.booking_date,
        start_time=body.start_time,
        duration_minutes=body.duration_minutes,
        selections=[TicketSelection(console=t.console.value, quantity=t.quantity) for t in body.tickets],
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        coupon_code=body.coupon_code,
    ))


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: str, db: DbSession):
    return BookingService(db).get_booking(booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit("10/minute")
async def cancel_booking(
    request: Request,
    booking_id: str,
    db: DbSession,
    owner: OptionalOwner,
    notifier: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
    body: Optional[BookingCancelRequest] = None,
):
    """Cancel a booking.

    Allowed for a dashboard user managing the café, or for a caller quoting
    the phone number or email the booking was made with.
    """
    service = BookingService(db, notifier=notifier)
    booking = service.get_booking(booking_id)
    if owner is None or not can_manage_cafe(owner, booking.cafe):
        body = body or BookingCancelRequest()
        if not contact_matches(booking, body.customer_phone, body.customer_email):
            raise AuthorizationError("Booking contact details do not match", status_code=STATUS_FORBIDDEN)
    return await service.cancel_booking(booking_id)
