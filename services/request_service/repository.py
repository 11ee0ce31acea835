import time

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ProductRequest


class RequestRepository:
    @staticmethod
    async def next_request_number(db: AsyncSession, prefix: str = "REQ") -> str:
        count = await db.scalar(select(func.count(ProductRequest.id)))
        return f"{prefix}{str(int(time.time() * 1000))[-6:]}{(count or 0) + 1:03d}"

    @staticmethod
    async def create_request(db: AsyncSession, request: ProductRequest):
        db.add(request)
        await db.commit()
        return request

    @staticmethod
    async def get_request(db: AsyncSession, request_id: int, user_id: str | None = None):
        stmt = select(ProductRequest).where(ProductRequest.id == request_id)
        if user_id is not None:
            stmt = stmt.where(ProductRequest.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def list_requests(db: AsyncSession, filters: list, page: int, limit: int):
        total = await db.scalar(select(func.count(ProductRequest.id)).where(*filters))
        result = await db.execute(
            select(ProductRequest)
            .where(*filters)
            .order_by(ProductRequest.created_at.desc(), ProductRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total or 0

    @staticmethod
    async def count_by(db: AsyncSession, column) -> dict[str, int]:
        result = await db.execute(select(column, func.count(ProductRequest.id)).group_by(column))
        return {key: count for key, count in result.all()}

    @staticmethod
    async def delivered_timelines(db: AsyncSession):
        result = await db.execute(
            select(ProductRequest.approved_at, ProductRequest.delivered_at).where(
                ProductRequest.status == "delivered",
                ProductRequest.approved_at.is_not(None),
                ProductRequest.delivered_at.is_not(None),
            )
        )
        return result.all()
