"""Tests for email templates, the dispatcher and the ZeptoMail provider."""

import json

import httpx
import pytest

from cafebook.core.errors import ValidationError
from cafebook.services.notification_service import (
    EmailKind,
    NotificationDispatcher,
    ZeptoMailProvider,
    render_booking_cancellation,
    render_booking_confirmation,
    render_login_alert,
    render_welcome,
)

BOOKING_DATA = {
    "email": "asha@example.com",
    "name": "Asha",
    "bookingId": "1a2b3c4d-0000-4000-8000-000000000000",
    "cafeName": "Arcade One",
    "cafeAddress": "12 MG Road",
    "bookingDate": "2026-11-02",
    "startTime": "5:00 pm",
    "duration": 60,
    "tickets": [{"console": "ps5", "quantity": 2, "price": 280.0}],
    "totalAmount": 280.0,
}


def _provider(handler, token="Zoho-enczapikey abc") -> ZeptoMailProvider:
    return ZeptoMailProvider(
        token=token,
        from_email="noreply@gaming-app.com",
        from_name="Gaming App",
        url="https://zeptomail.test/v1.1/email",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


class TestTemplates:
    def test_confirmation(self):
        subject, body = render_booking_confirmation(BOOKING_DATA)
        assert subject == "Booking Confirmed - Arcade One"
        assert "#1A2B3C4D" in body
        assert "PS5" in body
        assert "280.0" in body

    def test_cancellation_subject_uses_short_reference(self):
        subject, _ = render_booking_cancellation(BOOKING_DATA)
        assert subject == "Booking Cancelled - #1A2B3C4D"

    def test_login_and_welcome_subjects(self):
        assert render_login_alert({"email": "o@example.com", "loginTime": "now"})[0] == "New login to your Gaming App account"
        assert render_welcome({"email": "o@example.com"})[0] == "Welcome to Gaming App!"

    def test_customer_text_is_escaped(self):
        data = dict(BOOKING_DATA, name="<script>alert(1)</script>", cafeAddress='"><img src=x>')
        _, body = render_booking_confirmation(data)
        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        assert "<img src=x>" not in body

    def test_login_alert_escapes_device(self):
        _, body = render_login_alert({"email": "o@example.com", "loginTime": "now", "device": "<b>Chrome</b>"})
        assert "&lt;b&gt;Chrome&lt;/b&gt;" in body
        assert "Gaming App" in body


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_sends_rendered_email(self, fake_mail):
        result = await NotificationDispatcher(fake_mail).dispatch("booking_confirmation", BOOKING_DATA)
        assert result.success is True
        assert fake_mail.sent[0]["to"] == "asha@example.com"
        assert fake_mail.sent[0]["name"] == "Asha"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind,data,message", [
        (None, BOOKING_DATA, "Missing required fields: type and data"),
        ("welcome", None, "Missing required fields: type and data"),
        ("welcome", {"name": "Asha"}, "Missing email address"),
        ("newsletter", {"email": "a@example.com"}, "Invalid email type: newsletter"),
    ])
    async def test_caller_mistakes_raise(self, fake_mail, kind, data, message):
        with pytest.raises(ValidationError, match=message):
            await NotificationDispatcher(fake_mail).dispatch(kind, data)
        assert fake_mail.sent == []

    @pytest.mark.asyncio
    async def test_notify_quietly_never_raises(self, fake_mail):
        dispatcher = NotificationDispatcher(fake_mail)
        assert await dispatcher.notify_quietly(EmailKind.WELCOME, {"name": "No Email"}) is None

        fake_mail.error = "Failed to send email"
        result = await dispatcher.notify_quietly(EmailKind.WELCOME, {"email": "a@example.com"})
        assert result.success is False


class TestZeptoMailProvider:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"data": []})

        result = await _provider(handler).send("a@example.com", "Asha", "Hi", "<p>Hi</p>")

        assert result.success is True
        assert seen["auth"] == "Zoho-enczapikey abc"
        assert seen["body"]["to"] == [{"email_address": {"address": "a@example.com", "name": "Asha"}}]
        assert seen["body"]["subject"] == "Hi"

    @pytest.mark.asyncio
    async def test_provider_error_message(self):
        result = await _provider(lambda r: httpx.Response(400, json={"message": "Invalid recipient"})).send(
            "a@example.com", None, "Hi", "<p>Hi</p>"
        )
        assert result.success is False
        assert result.error == "Invalid recipient"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = await _provider(handler).send("a@example.com", None, "Hi", "<p>Hi</p>")
        assert result.success is False
        assert result.error == "Email request timed out"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        result = await _provider(lambda r: httpx.Response(200), token="").send("a@example.com", None, "Hi", "x")
        assert result.success is False
        assert result.error == "Email service not configured"
