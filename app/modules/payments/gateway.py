"""Payment gateway client and callback signature helpers (Razorpay-compatible)."""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol
from uuid import UUID

import httpx

from app.core.config import get_settings
from app.shared.exceptions import BookingValidationError, PaymentOrderError

logger = logging.getLogger(__name__)
settings = get_settings()

RECEIPT_PREFIX = "receipt_"


def make_receipt(booking_id: UUID | str, max_length: int = 40) -> str:
    """Gateway receipt for a booking: deterministic prefix of ``receipt_<id>``."""
    return f"{RECEIPT_PREFIX}{booking_id}"[:max_length]


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit price (rupees) to the gateway's minor unit (paise)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 over ``"{order_id}|{payment_id}"``."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


@dataclass(frozen=True, slots=True)
class GatewayOrder:
    order_id: str
    amount: int
    currency: str
    receipt: str


class PaymentGateway(Protocol):
    """Order-creation contract used by the booking service."""

    key_id: str

    async def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        """Create an order for ``amount`` minor units."""


class RazorpayGateway:
    """Minimal async client for the orders endpoint."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com",
        timeout_seconds: float = 15.0,
        receipt_max_length: int = 40,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.key_id = key_id
        self.receipt_max_length = receipt_max_length
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            auth=httpx.BasicAuth(key_id, key_secret),
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> RazorpayGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        if amount <= 0:
            raise BookingValidationError("Payment amount must be positive")
        if len(receipt) > self.receipt_max_length:
            raise BookingValidationError(
                f"Receipt must not exceed {self.receipt_max_length} characters",
            )

        try:
            response = await self.http.post(
                "/v1/orders",
                json={"amount": amount, "currency": currency, "receipt": receipt},
            )
        except httpx.HTTPError as exc:
            logger.warning("Payment gateway request failed: %s", exc)
            raise PaymentOrderError("Payment setup failed, please retry") from exc

        if response.status_code >= 400:
            logger.warning(
                "Payment gateway rejected order (status=%s): %s",
                response.status_code,
                response.text[:500],
            )
            raise PaymentOrderError("Payment setup failed, please retry")

        try:
            data = response.json()
            return GatewayOrder(
                order_id=str(data["id"]),
                amount=int(data.get("amount", amount)),
                currency=str(data.get("currency", currency)),
                receipt=str(data.get("receipt", receipt)),
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Payment gateway returned an unreadable order payload")
            raise PaymentOrderError("Payment setup failed, please retry") from exc


def build_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway(
        settings.payment_gateway_key_id,
        settings.payment_gateway_key_secret,
        base_url=settings.payment_gateway_base_url,
        timeout_seconds=settings.payment_gateway_timeout_seconds,
        receipt_max_length=settings.payment_receipt_max_length,
    )


async def get_payment_gateway() -> AsyncGenerator[RazorpayGateway, None]:
    """Dependency provider for a request-scoped gateway client."""
    async with build_payment_gateway() as gateway:
        yield gateway
