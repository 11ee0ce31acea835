"""
Payment gateway port and its implementations.

Checkout programs against ``PaymentGateway``; the mock is the default and the
remote adapter forwards to an external processor when one is configured.
"""
import asyncio
import random
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog

from shared.config.settings import (
    PAYMENT_APPROVAL_RATE,
    PAYMENT_GATEWAY_API_KEY,
    PAYMENT_GATEWAY_URL,
    PAYMENT_SIMULATED_DELAY,
)

logger = structlog.get_logger(__name__)

INVALID_CARD_MESSAGE = "Invalid payment information. Please check your card details."
DECLINED_MESSAGE = "Payment declined. Please check your card details or try a different payment method."
REQUIRED_CARD_FIELDS = ("card_number", "expiry_date", "cvv")


@dataclass(frozen=True)
class PaymentResult:
    approved: bool
    reference: str | None = None
    reason: str | None = None


def missing_card_fields(card_details: dict | None) -> list[str]:
    card_details = card_details or {}
    return [f for f in REQUIRED_CARD_FIELDS if not str(card_details.get(f) or "").strip()]


class PaymentGateway(ABC):
    """Abstract interface for payment processors."""

    @abstractmethod
    async def authorize(self, amount: float, method: str, card_details: dict | None) -> PaymentResult:
        """Authorize ``amount`` on the given payment method.

        Returns:
            PaymentResult with a transaction reference when approved, or the
            user-facing reason when declined.
        """
        ...


class MockPaymentGateway(PaymentGateway):
    """Stand-in processor: simulated latency and a random decline rate."""

    def __init__(self, delay: float = PAYMENT_SIMULATED_DELAY,
                 approval_rate: float = PAYMENT_APPROVAL_RATE,
                 rng: random.Random | None = None):
        self.delay = delay
        self.approval_rate = approval_rate
        self.rng = rng or random.Random()

    def _reference(self) -> str:
        suffix = "".join(self.rng.choices(string.ascii_lowercase + string.digits, k=9))
        return f"txn_{int(time.time() * 1000)}_{suffix}"

    async def authorize(self, amount: float, method: str, card_details: dict | None) -> PaymentResult:
        missing = missing_card_fields(card_details)
        if missing:
            logger.info("payment_invalid_card", method=method, missing=missing)
            return PaymentResult(approved=False, reason=INVALID_CARD_MESSAGE)

        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if self.rng.random() < self.approval_rate:
            return PaymentResult(approved=True, reference=self._reference())
        return PaymentResult(approved=False, reason=DECLINED_MESSAGE)


class RemotePaymentGateway(PaymentGateway):
    """Forwards authorizations to an HTTP processor.

    Expects ``POST {base_url}/authorize`` to answer with
    ``{"approved": bool, "reference": str | None, "reason": str | None}``.
    """

    def __init__(self, base_url: str, api_key: str = PAYMENT_GATEWAY_API_KEY, timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def authorize(self, amount: float, method: str, card_details: dict | None) -> PaymentResult:
        missing = missing_card_fields(card_details)
        if missing:
            return PaymentResult(approved=False, reason=INVALID_CARD_MESSAGE)

        payload = {"amount": round(amount, 2), "method": method, "card": card_details}
        # Processor credential only; the cluster's internal key never leaves it
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self.transport, headers=headers) as client:
                resp = await client.post("/authorize", json=payload)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as e:
            logger.error("payment_gateway_unreachable", error=str(e))
            return PaymentResult(
                approved=False,
                reason="Payment processing failed. Please check your payment information and try again."
            )

        if body.get("approved"):
            return PaymentResult(approved=True, reference=body.get("reference"))
        return PaymentResult(approved=False, reason=body.get("reason") or DECLINED_MESSAGE)


def build_payment_gateway() -> PaymentGateway:
    if PAYMENT_GATEWAY_URL:
        return RemotePaymentGateway(PAYMENT_GATEWAY_URL)
    return MockPaymentGateway()


_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; tests override it with a deterministic gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway
