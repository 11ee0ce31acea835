from dataclasses import dataclass

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import PaymentDeclined
from shared.observability import ecomm_payment_authorizations_total

from .gateway import PaymentGateway, PaymentResult
from .models import Payment
from .repository import PaymentRepository

logger = structlog.get_logger(__name__)

CASH_ON_DELIVERY = "cash_on_delivery"


@dataclass(frozen=True)
class CheckoutPayment:
    payment_status: str
    order_status: str
    result: PaymentResult | None = None


class PaymentService:
    @staticmethod
    async def authorize_checkout(gateway: PaymentGateway, amount: float, method: str,
                                 card_details: dict | None, is_admin: bool) -> CheckoutPayment:
        """Decides the initial payment/order status of a checkout.

        Admins and cash on delivery skip the gateway. Anything the gateway
        does not approve raises ``PaymentDeclined`` so nothing gets persisted.
        """
        if is_admin:
            ecomm_payment_authorizations_total.labels(outcome="bypassed").inc()
            return CheckoutPayment(payment_status="paid", order_status="confirmed")

        if method == CASH_ON_DELIVERY:
            ecomm_payment_authorizations_total.labels(outcome="bypassed").inc()
            return CheckoutPayment(payment_status="pending", order_status="confirmed")

        try:
            result = await gateway.authorize(amount, method, card_details)
        except Exception as e:
            logger.error("payment_processing_error", method=method, error=str(e))
            ecomm_payment_authorizations_total.labels(outcome="error").inc()
            raise PaymentDeclined(
                "Payment processing failed. Please check your payment information and try again."
            ) from e

        if not result.approved:
            ecomm_payment_authorizations_total.labels(outcome="declined").inc()
            logger.info("payment_declined", method=method, amount=amount)
            raise PaymentDeclined(result.reason or "Payment failed. Please try again.")

        ecomm_payment_authorizations_total.labels(outcome="approved").inc()
        return CheckoutPayment(payment_status="paid", order_status="confirmed", result=result)

    @staticmethod
    def record_payment(db: AsyncSession, order_number: str, amount: float, method: str,
                       result: PaymentResult) -> Payment:
        payment = Payment(
            order_number=order_number,
            amount=amount,
            method=method,
            status="paid",
            transaction_id=result.reference,
        )
        return PaymentRepository.add_payment(db, payment)

    @staticmethod
    async def mark_refunded(db: AsyncSession, order_number: str) -> None:
        await db.execute(
            update(Payment).where(Payment.order_number == order_number).values(status="refunded")
        )

    @staticmethod
    async def list_for_order(db: AsyncSession, order_number: str):
        return await PaymentRepository.get_for_order(db, order_number)
