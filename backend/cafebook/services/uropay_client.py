"""UroPay UPI gateway client.

Zero-commission UPI collections. Orders are created with the amount in
paise; the customer pays via QR/UPI intent and the order is polled until
``COMPLETED``.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from cafebook.core.config import settings
from cafebook.core.errors import GatewayError

logger = logging.getLogger("payments")


class RemoteOrderStatus(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


@dataclass
class RemoteOrder:
    uropay_order_id: str
    order_status: Optional[str] = None
    upi_string: Optional[str] = None
    qr_code: Optional[str] = None
    amount_in_rupees: Optional[str] = None
    merchant_order_id: Optional[str] = None


@dataclass
class RemoteStatus:
    uropay_order_id: str
    order_status: str


def to_paise(amount: Any) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def auth_token(secret: str) -> str:
    """The gateway expects the SHA-512 hex digest of the secret as bearer token."""
    return hashlib.sha512(secret.encode("utf-8")).hexdigest()


def verify_webhook_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, (signature or "").strip())


def _unwrap(body: Any) -> Dict[str, Any]:
    # Responses come either bare or wrapped as {"data": {...}}
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        return body["data"]
    return body if isinstance(body, dict) else {}


class UroPayClient:
    """Thin async wrapper over the UroPay REST API."""

    def __init__(
        self,
        api_key: str,
        secret: str,
        vpa: str,
        vpa_name: str = "Gaming App",
        base_url: str = "https://api.uropay.me",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.secret = secret
        self.vpa = vpa
        self.vpa_name = vpa_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "UroPayClient":
        return cls(
            api_key=settings.uropay_api_key,
            secret=settings.uropay_secret,
            vpa=settings.uropay_vpa,
            vpa_name=settings.uropay_vpa_name,
            base_url=settings.uropay_api_base,
            timeout=settings.outbound_timeout_seconds,
        )

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key or not self.secret:
            raise GatewayError("UroPay credentials not configured")
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "Authorization": f"Bearer {auth_token(self.secret)}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException:
            logger.error(f"UroPay {method} {path} timed out after {self.timeout}s")
            raise GatewayError("Payment gateway timed out", retryable=True)
        except httpx.HTTPError as e:
            logger.error(f"UroPay {method} {path} network error: {e}")
            raise GatewayError("Payment gateway unreachable", retryable=True)

        if not response.is_success:
            logger.error(f"UroPay {method} {path} error {response.status_code}: {response.text[:500]}")
            raise GatewayError(
                f"Payment gateway error: {response.status_code}",
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return {}
        try:
            return _unwrap(response.json())
        except ValueError:
            logger.error(f"UroPay {method} {path} returned non-JSON body")
            raise GatewayError("Payment gateway returned an invalid response")

    async def create_order(
        self,
        booking_id: str,
        amount: Decimal,
        customer_name: str,
        customer_email: str,
        cafe_name: Optional[str] = None,
    ) -> RemoteOrder:
        if not self.vpa:
            raise GatewayError("UroPay VPA not configured")
        payload = {
            "vpa": self.vpa,
            "vpaName": self.vpa_name,
            "amount": to_paise(amount),
            "merchantOrderId": booking_id,
            "customerName": customer_name,
            "customerEmail": customer_email,
            "transactionNote": f"Booking at {cafe_name}" if cafe_name else "Gaming Cafe Booking",
            "notes": {"bookingId": booking_id},
        }
        data = await self._request("POST", "/order/generate", headers=self._auth_headers(), json=payload)
        order_id = data.get("uroPayOrderId")
        if not order_id:
            logger.error(f"UroPay create order for booking {booking_id} returned no order id")
            raise GatewayError("Payment gateway returned no order id", retryable=True)
        logger.info(f"UroPay order {order_id} created for booking {booking_id}")
        return RemoteOrder(
            uropay_order_id=order_id,
            order_status=data.get("orderStatus"),
            upi_string=data.get("upiString"),
            qr_code=data.get("qrCode"),
            amount_in_rupees=data.get("amountInRupees"),
            merchant_order_id=data.get("merchantOrderId"),
        )

    async def update_order(
        self,
        order_id: str,
        reference_number: str,
        order_status: Optional[RemoteOrderStatus] = None,
    ) -> None:
        payload: Dict[str, Any] = {"uroPayOrderId": order_id, "referenceNumber": reference_number}
        if order_status is not None:
            payload["orderStatus"] = RemoteOrderStatus(order_status).value
        await self._request("PATCH", "/order/update", headers=self._auth_headers(), json=payload)

    async def get_order_status(self, order_id: str) -> RemoteStatus:
        """Status lookups need no credentials."""
        data = await self._request("GET", f"/order/status/{order_id}")
        status = data.get("orderStatus")
        if not status:
            raise GatewayError("Payment gateway returned no order status")
        return RemoteStatus(uropay_order_id=data.get("uroPayOrderId") or order_id, order_status=status)


def get_payment_gateway() -> UroPayClient:
    """FastAPI dependency; tests override it with a fake gateway."""
    return UroPayClient.from_settings()
