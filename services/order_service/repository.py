import time

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, TERMINAL_ORDER_STATUSES


class OrderRepository:
    @staticmethod
    async def next_order_number(db: AsyncSession, prefix: str = "EC") -> str:
        # Count-based sequence: readable, not a reserved counter
        count = await db.scalar(select(func.count(Order.id)))
        return f"{prefix}{str(int(time.time() * 1000))[-6:]}{(count or 0) + 1:03d}"

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, user_id: str | None = None):
        stmt = select(Order).where(Order.id == order_id)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_public_number(db: AsyncSession, number: str):
        result = await db.execute(
            select(Order).where(or_(Order.order_number == number, Order.tracking_number == number))
        )
        return result.scalars().first()

    @staticmethod
    async def list_orders(db: AsyncSession, filters: list, page: int, limit: int):
        total = await db.scalar(select(func.count(Order.id)).where(*filters))
        result = await db.execute(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total or 0

    @staticmethod
    async def get_active_order_ids(db: AsyncSession, limit: int) -> list[int]:
        result = await db.execute(
            select(Order.id)
            .where(Order.status.not_in(TERMINAL_ORDER_STATUSES))
            .order_by(Order.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_by_status(db: AsyncSession) -> dict[str, int]:
        result = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
        return {status: count for status, count in result.all()}

    @staticmethod
    async def paid_revenue(db: AsyncSession) -> float:
        total = await db.scalar(
            select(func.coalesce(func.sum(Order.final_amount), 0)).where(Order.payment_status == "paid")
        )
        return round(float(total or 0), 2)
