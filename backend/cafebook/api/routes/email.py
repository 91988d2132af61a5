"""Transactional email endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from cafebook.core.errors import STATUS_INTERNAL_ERROR, error_response
from cafebook.core.rate_limit import limiter
from cafebook.schemas.payment import EmailRequest
from cafebook.services.notification_service import NotificationDispatcher, get_notification_dispatcher

router = APIRouter()


@router.post("")
@limiter.limit("10/minute")
async def send_email(
    request: Request,
    body: EmailRequest,
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
):
    result = await dispatcher.dispatch(body.type, body.data)
    if not result.success:
        return error_response(result.error or "Failed to send email", STATUS_INTERNAL_ERROR)
    return {"success": True}
