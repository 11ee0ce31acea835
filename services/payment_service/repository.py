from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Payment

class PaymentRepository:
    @staticmethod
    def add_payment(db: AsyncSession, payment: Payment) -> Payment:
        # Joins the checkout transaction; the caller commits
        db.add(payment)
        return payment

    @staticmethod
    async def get_for_order(db: AsyncSession, order_number: str):
        result = await db.execute(
            select(Payment).where(Payment.order_number == order_number).order_by(Payment.id)
        )
        return result.scalars().all()
