import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import BusinessRuleViolation, EntityNotFound
from shared.observability import ecomm_stock_adjustments_total

from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate

logger = structlog.get_logger(__name__)


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate):
        product = Product(
            name=data.name,
            description=data.description,
            price=data.price,
            category=data.category,
            images=list(data.images),
            stock=data.stock
        )
        return await ProductRepository.create_product(db, product)

    @staticmethod
    async def list_products(db: AsyncSession):
        return await ProductRepository.get_all_products(db)

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int):
        return await ProductRepository.get_product_by_id(db, product_id)

    @staticmethod
    async def adjust_stock(db: AsyncSession, product_id: int, delta: int, commit: bool = True) -> Product:
        """Adds ``delta`` to a product's stock.

        With ``commit=False`` the change joins the caller's transaction, which
        is how checkout and cancellation keep stock and order writes together.
        """
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise EntityNotFound("Product")

        if product.stock + delta < 0:
            raise BusinessRuleViolation(f"Insufficient stock for product {product.name}")

        product.stock += delta
        ecomm_stock_adjustments_total.labels(direction="restore" if delta > 0 else "decrement").inc()
        logger.info("stock_adjusted", product_id=product_id, delta=delta, stock=product.stock)

        if commit:
            await db.commit()
            await db.refresh(product)
        return product
