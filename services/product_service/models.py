from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, event
from shared.config.database import Base
from shared.lifecycle import utcnow

LOW_STOCK_THRESHOLD = 5


def stock_status_for(stock: int) -> str:
    if stock == 0:
        return "Out of Stock"
    if stock <= LOW_STOCK_THRESHOLD:
        return "Low Stock"
    return "Available"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(String, nullable=False, default="other")
    images = Column(JSON, nullable=False, default=list)
    stock = Column(Integer, nullable=False, default=0)
    # Derived from stock on every flush, never written directly
    in_stock = Column(Boolean, nullable=False, default=False)
    stock_status = Column(String, nullable=False, default="Out of Stock")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _derive_stock_fields(mapper, connection, target: Product):
    if target.stock is None:
        target.stock = 0
    if target.stock < 0:
        raise ValueError(f"Stock cannot be negative for product {target.name}")
    target.in_stock = target.stock > 0
    target.stock_status = stock_status_for(target.stock)
    target.updated_at = utcnow()
