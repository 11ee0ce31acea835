"""Tests for the payment gateway adapters and checkout authorization."""

import random

import httpx
import pytest

from conftest import CARD, FakeGateway
from services.payment_service.gateway import (
    DECLINED_MESSAGE,
    INVALID_CARD_MESSAGE,
    MockPaymentGateway,
    RemotePaymentGateway,
    missing_card_fields,
)
from services.payment_service.service import PaymentService
from shared.exceptions import PaymentDeclined


class TestMockGateway:
    def test_missing_card_fields(self):
        assert missing_card_fields({"card_number": "4242", "cvv": " "}) == ["expiry_date", "cvv"]
        assert missing_card_fields(None) == ["card_number", "expiry_date", "cvv"]

    async def test_incomplete_card_is_rejected_without_delay(self):
        gateway = MockPaymentGateway(delay=60, approval_rate=1.0)
        result = await gateway.authorize(10.0, "credit_card", {"card_number": "4242"})
        assert not result.approved
        assert result.reason == INVALID_CARD_MESSAGE

    async def test_approval(self):
        gateway = MockPaymentGateway(delay=0, approval_rate=1.0, rng=random.Random(7))
        result = await gateway.authorize(10.0, "credit_card", CARD)
        assert result.approved
        assert result.reference.startswith("txn_")
        assert len(result.reference.rsplit("_", 1)[1]) == 9

    async def test_decline(self):
        gateway = MockPaymentGateway(delay=0, approval_rate=0.0)
        result = await gateway.authorize(10.0, "credit_card", CARD)
        assert not result.approved
        assert result.reason == DECLINED_MESSAGE


class TestRemoteGateway:
    async def test_forwards_authorization(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["internal_key"] = request.headers.get("X-Internal-API-Key")
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"approved": True, "reference": "psp-1"})

        gateway = RemotePaymentGateway(
            "http://psp.local/", api_key="psp-secret", transport=httpx.MockTransport(handler)
        )
        result = await gateway.authorize(63.54, "credit_card", CARD)

        assert result.approved
        assert result.reference == "psp-1"
        assert seen == {"path": "/authorize", "internal_key": None, "authorization": "Bearer psp-secret"}

    async def test_internal_key_never_sent_to_processor(self):
        headers = {}

        def handler(request: httpx.Request):
            headers.update(request.headers)
            return httpx.Response(200, json={"approved": True, "reference": "psp-2"})

        gateway = RemotePaymentGateway("http://psp.local", api_key="", transport=httpx.MockTransport(handler))
        await gateway.authorize(10.0, "credit_card", CARD)

        assert "x-internal-api-key" not in headers
        assert "authorization" not in headers
        assert "test-internal-key" not in headers.values()

    async def test_declined_by_processor(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"approved": False}))
        result = await RemotePaymentGateway("http://psp.local", transport=transport).authorize(5, "paypal", CARD)
        assert not result.approved
        assert result.reason == DECLINED_MESSAGE

    async def test_processor_error(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(503))
        result = await RemotePaymentGateway("http://psp.local", transport=transport).authorize(5, "paypal", CARD)
        assert not result.approved
        assert result.reason.startswith("Payment processing failed")


class TestAuthorizeCheckout:
    async def test_admin_bypasses_gateway(self):
        gateway = FakeGateway()
        outcome = await PaymentService.authorize_checkout(gateway, 10.0, "credit_card", {}, is_admin=True)
        assert (outcome.payment_status, outcome.order_status) == ("paid", "confirmed")
        assert gateway.calls == []

    async def test_cash_on_delivery(self):
        gateway = FakeGateway()
        outcome = await PaymentService.authorize_checkout(gateway, 10.0, "cash_on_delivery", {}, is_admin=False)
        assert (outcome.payment_status, outcome.order_status) == ("pending", "confirmed")
        assert gateway.calls == []

    async def test_approved(self):
        outcome = await PaymentService.authorize_checkout(FakeGateway(), 10.0, "credit_card", CARD, is_admin=False)
        assert (outcome.payment_status, outcome.order_status) == ("paid", "confirmed")
        assert outcome.result.reference == "txn_test_1"

    async def test_declined(self):
        with pytest.raises(PaymentDeclined, match="Card refused"):
            await PaymentService.authorize_checkout(
                FakeGateway(approved=False, reason="Card refused"), 10.0, "credit_card", CARD, is_admin=False
            )

    async def test_gateway_exception(self):
        with pytest.raises(PaymentDeclined, match="Payment processing failed"):
            await PaymentService.authorize_checkout(
                FakeGateway(error=RuntimeError("boom")), 10.0, "credit_card", CARD, is_admin=False
            )
