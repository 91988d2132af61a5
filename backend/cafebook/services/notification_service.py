"""Transactional email through ZeptoMail.

``dispatch`` raises only for caller mistakes (no recipient, unknown kind).
Provider trouble, including timeouts and missing credentials, comes back as
``DispatchResult(success=False)`` so booking and payment flows never fail
because an email could not be sent.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx
from jinja2 import DictLoader, Environment

from cafebook.core.config import settings
from cafebook.core.errors import ValidationError
from cafebook.models.cafe import ConsoleType

logger = logging.getLogger(__name__)


class EmailKind(str, Enum):
    LOGIN_ALERT = "login_alert"
    BOOKING_CONFIRMATION = "booking_confirmation"
    BOOKING_CANCELLATION = "booking_cancellation"
    WELCOME = "welcome"


@dataclass
class DispatchResult:
    """Result of a send attempt."""
    success: bool
    error: Optional[str] = None


# ==================== TEMPLATES ====================

LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #0f172a; font-family: Arial, sans-serif;">
  <table role="presentation" style="width: 100%; border-collapse: collapse;">
    <tr>
      <td style="padding: 40px 20px;">
        <table role="presentation" style="max-width: 600px; margin: 0 auto; background-color: #1e293b; border-radius: 16px;">
          <tr>
            <td style="padding: 32px 32px 24px; text-align: center; background-color: #059669;">
              <h1 style="margin: 0; color: #ffffff; font-size: 28px;">{{ app_name }}</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 32px;">
              {% block content %}{% endblock %}
            </td>
          </tr>
          <tr>
            <td style="padding: 24px 32px; background-color: #0f172a; text-align: center;">
              <p style="margin: 0; color: #64748b; font-size: 12px;">
                This email was sent by {{ app_name }}. Please do not reply to this email.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""

MACROS = """
{% macro greeting(name) %}{% if name %}Hi {{ name }}{% else %}Hi{% endif %}{% endmacro %}
{% macro detail(label, value) %}
      <p style="margin: 0 0 4px; color: #64748b; font-size: 12px;">{{ label }}</p>
      <p style="margin: 0 0 16px; color: #ffffff; font-size: 14px;">{{ value if value is not none else "" }}</p>
{% endmacro %}
"""

LOGIN_ALERT = """{% extends "layout.html" %}
{% from "macros.html" import greeting, detail %}
{% block content %}
    <h2 style="margin: 0 0 16px; color: #ffffff;">New Login Detected</h2>
    <p style="color: #94a3b8;">{{ greeting(name) }},<br><br>
      We detected a new login to your {{ app_name }} account.</p>
    <div style="background-color: #0f172a; border-radius: 12px; padding: 20px; margin-bottom: 24px;">
      {{ detail("Time", login_time) }}
      {% if device %}{{ detail("Device", device) }}{% endif %}
      {% if location %}{{ detail("Location", location) }}{% endif %}
    </div>
    <p style="color: #94a3b8;">If this wasn't you, please secure your account immediately by changing your password.</p>
{% endblock %}"""

BOOKING_CONFIRMATION = """{% extends "layout.html" %}
{% from "macros.html" import greeting, detail %}
{% block content %}
    <h2 style="margin: 0 0 16px; color: #ffffff; text-align: center;">Booking Confirmed!</h2>
    <p style="color: #94a3b8; text-align: center;">{{ greeting(name) }}, your booking has been confirmed. Here are the details:</p>
    <div style="background-color: #0f172a; border-radius: 12px; padding: 20px; margin-bottom: 24px;">
      {{ detail("Booking ID", reference) }}
      {{ detail("Venue", cafe_name) }}
      {% if cafe_address %}{{ detail("Address", cafe_address) }}{% endif %}
      {{ detail("Date", booking_date) }}
      {{ detail("Time", start_time) }}
      {{ detail("Duration", duration ~ " min") }}
    </div>
    <h3 style="color: #ffffff;">Your Tickets</h3>
    <table role="presentation" style="width: 100%;">
      {% for ticket in tickets %}
      <tr>
        <td style="padding: 12px 0; color: #ffffff;">{{ ticket.label }}
          <br><span style="color: #64748b; font-size: 12px;">{{ ticket.quantity }} player(s)</span></td>
        <td style="padding: 12px 0; text-align: right; color: #10b981;">&#8377;{{ ticket.price }}</td>
      </tr>
      {% endfor %}
      <tr>
        <td style="padding: 16px 0 0; color: #ffffff; font-weight: 600;">Total</td>
        <td style="padding: 16px 0 0; text-align: right; color: #10b981; font-weight: 700;">&#8377;{{ total_amount }}</td>
      </tr>
    </table>
    <p style="color: #94a3b8; text-align: center;">Please arrive 10 minutes before your scheduled time. See you there!</p>
{% endblock %}"""

BOOKING_CANCELLATION = """{% extends "layout.html" %}
{% from "macros.html" import greeting, detail %}
{% block content %}
    <h2 style="margin: 0 0 16px; color: #ffffff; text-align: center;">Booking Cancelled</h2>
    <p style="color: #94a3b8; text-align: center;">{{ greeting(name) }}, your booking has been cancelled. Here are the details:</p>
    <div style="background-color: #0f172a; border-radius: 12px; padding: 20px; margin-bottom: 24px;">
      {{ detail("Booking ID", reference) }}
      {{ detail("Venue", cafe_name) }}
      {{ detail("Date", booking_date) }}
      {{ detail("Time", start_time) }}
      {{ detail("Amount", "₹" ~ total_amount) }}
    </div>
    <p style="color: #94a3b8; text-align: center;">If you have any questions about this cancellation, please contact the venue directly.</p>
{% endblock %}"""

WELCOME = """{% extends "layout.html" %}
{% from "macros.html" import greeting %}
{% block content %}
    <h2 style="margin: 0 0 16px; color: #ffffff; text-align: center;">Welcome to {{ app_name }}!</h2>
    <p style="color: #94a3b8;">{{ greeting(name) }},<br><br>Thanks for joining {{ app_name }}! We're excited to have you on board.</p>
    <ul style="color: #94a3b8; line-height: 2;">
      <li>Browse gaming cafes near you</li>
      <li>Book PS5, PS4, Xbox, PC and more</li>
      <li>Get exclusive member discounts</li>
    </ul>
    <div style="text-align: center;">
      <a href="{{ site_url }}" style="background-color: #059669; color: #ffffff; padding: 14px 32px; border-radius: 12px; text-decoration: none;">Explore Cafes</a>
    </div>
{% endblock %}"""

templates = Environment(
    loader=DictLoader({
        "layout.html": LAYOUT,
        "macros.html": MACROS,
        "login_alert.html": LOGIN_ALERT,
        "booking_confirmation.html": BOOKING_CONFIRMATION,
        "booking_cancellation.html": BOOKING_CANCELLATION,
        "welcome.html": WELCOME,
    }),
    autoescape=True,
)


def booking_reference(booking_id: Any) -> str:
    """Short customer-facing reference, e.g. ``#1A2B3C4D``."""
    return f"#{str(booking_id or '')[:8].upper()}"


def _console_label(value: Any) -> str:
    try:
        return ConsoleType(value).label
    except ValueError:
        return str(value)


def _render(template_name: str, **context: Any) -> str:
    return templates.get_template(template_name).render(app_name=settings.app_name, **context)


def render_login_alert(data: Mapping[str, Any]) -> Tuple[str, str]:
    body = _render(
        "login_alert.html",
        name=data.get("name"),
        login_time=data.get("loginTime", ""),
        device=data.get("device"),
        location=data.get("location"),
    )
    return f"New login to your {settings.app_name} account", body


def render_booking_confirmation(data: Mapping[str, Any]) -> Tuple[str, str]:
    cafe_name = data.get("cafeName") or ""
    tickets = [
        {"label": _console_label(t.get("console")), "quantity": t.get("quantity"), "price": t.get("price")}
        for t in data.get("tickets") or []
    ]
    body = _render(
        "booking_confirmation.html",
        name=data.get("name"),
        reference=booking_reference(data.get("bookingId")),
        cafe_name=cafe_name,
        cafe_address=data.get("cafeAddress"),
        booking_date=data.get("bookingDate", ""),
        start_time=data.get("startTime", ""),
        duration=data.get("duration", ""),
        tickets=tickets,
        total_amount=data.get("totalAmount", 0),
    )
    return f"Booking Confirmed - {cafe_name}", body


def render_booking_cancellation(data: Mapping[str, Any]) -> Tuple[str, str]:
    reference = booking_reference(data.get("bookingId"))
    body = _render(
        "booking_cancellation.html",
        name=data.get("name"),
        reference=reference,
        cafe_name=data.get("cafeName", ""),
        booking_date=data.get("bookingDate", ""),
        start_time=data.get("startTime", ""),
        total_amount=data.get("totalAmount", 0),
    )
    return f"Booking Cancelled - {reference}", body


def render_welcome(data: Mapping[str, Any]) -> Tuple[str, str]:
    body = _render("welcome.html", name=data.get("name"), site_url=settings.site_url)
    return f"Welcome to {settings.app_name}!", body


RENDERERS: Dict[EmailKind, Callable[[Mapping[str, Any]], Tuple[str, str]]] = {
    EmailKind.LOGIN_ALERT: render_login_alert,
    EmailKind.BOOKING_CONFIRMATION: render_booking_confirmation,
    EmailKind.BOOKING_CANCELLATION: render_booking_cancellation,
    EmailKind.WELCOME: render_welcome,
}


# ==================== PROVIDER ====================

class ZeptoMailProvider:
    """ZeptoMail HTTP API client."""

    def __init__(
        self,
        token: str,
        from_email: str,
        from_name: str,
        url: str = "https://api.zeptomail.com/v1.1/email",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.from_email = from_email
        self.from_name = from_name
        self.url = url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "ZeptoMailProvider":
        return cls(
            token=settings.zepto_mail_token,
            from_email=settings.zepto_mail_from_email,
            from_name=settings.zepto_mail_from_name,
            url=settings.zepto_mail_url,
            timeout=settings.outbound_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.token and self.from_email)

    async def send(self, to: str, to_name: Optional[str], subject: str, html_body: str) -> DispatchResult:
        if not self.configured:
            logger.error("ZeptoMail credentials not configured")
            return DispatchResult(success=False, error="Email service not configured")

        recipient: Dict[str, Any] = {"address": to}
        if to_name:
            recipient["name"] = to_name
        payload = {
            "from": {"address": self.from_email, "name": self.from_name},
            "to": [{"email_address": recipient}],
            "subject": subject,
            "htmlbody": html_body,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": self.token,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"ZeptoMail timed out sending '{subject}' to {to}")
            return DispatchResult(success=False, error="Email request timed out")
        except httpx.HTTPError as e:
            logger.error(f"ZeptoMail network error sending '{subject}' to {to}: {e}")
            return DispatchResult(success=False, error="Network error while sending email")

        if response.is_success:
            logger.info(f"Email '{subject}' sent to {to}")
            return DispatchResult(success=True)

        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        logger.error(f"ZeptoMail error {response.status_code} sending '{subject}' to {to}: {response.text[:500]}")
        return DispatchResult(success=False, error=message or "Failed to send email")


# ==================== DISPATCHER ====================

class NotificationDispatcher:
    def __init__(self, provider: ZeptoMailProvider):
        self.provider = provider

    async def dispatch(self, kind: Any, data: Optional[Mapping[str, Any]]) -> DispatchResult:
        if not kind or not data:
            raise ValidationError("Missing required fields: type and data")
        if not data.get("email"):
            raise ValidationError("Missing email address")
        try:
            email_kind = EmailKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid email type: {kind}")

        subject, html_body = RENDERERS[email_kind](data)
        return await self.provider.send(data["email"], data.get("name"), subject, html_body)

    async def notify_quietly(self, kind: EmailKind, data: Mapping[str, Any]) -> Optional[DispatchResult]:
        """Best-effort send for side notifications. Never raises."""
        try:
            result = await self.dispatch(kind, data)
        except ValidationError as e:
            logger.info(f"Skipping {EmailKind(kind).value} email: {e.message}")
            return None
        except Exception:
            logger.exception(f"Unexpected error sending {EmailKind(kind).value} email")
            return None
        if not result.success:
            logger.warning(f"{EmailKind(kind).value} email failed: {result.error}")
        return result


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; tests override it with a fake provider."""
    return NotificationDispatcher(ZeptoMailProvider.from_settings())
