from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, event
from sqlalchemy.orm import relationship
from shared.config.database import Base
from shared.lifecycle import TrackingUpdateMixin, utcnow
from shared.pricing import order_final_amount

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("credit_card", "debit_card", "paypal", "bank_transfer", "cash_on_delivery")
TERMINAL_ORDER_STATUSES = ("delivered", "cancelled")


class OrderItem(Base):
    """Line item; name, price and image are snapshots taken at checkout."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")


class OrderTrackingUpdate(TrackingUpdateMixin, Base):
    __tablename__ = "order_tracking_updates"

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    order = relationship("Order", back_populates="tracking_updates")


class Order(Base):
    __tablename__ = "orders"

    tracking_update_class = OrderTrackingUpdate

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    # Admin-placed orders never touched stock, so cancelling them restores nothing
    placed_by_admin = Column(Boolean, nullable=False, default=False)

    total_amount = Column(Float, nullable=False) # subtotal of the line items
    shipping_cost = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    final_amount = Column(Float, nullable=False, default=0)

    status = Column(String, nullable=False, default="pending")
    payment_status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=False, default="credit_card")

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=True)

    tracking_number = Column(String, nullable=True, index=True)
    carrier = Column(String, nullable=True)
    estimated_delivery = Column(Date, nullable=True)

    notes = Column(String, nullable=True)
    admin_notes = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship(
        "OrderItem", back_populates="order", lazy="selectin",
        cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    tracking_updates = relationship(
        "OrderTrackingUpdate", back_populates="order", lazy="selectin",
        cascade="all, delete-orphan", order_by="OrderTrackingUpdate.id"
    )


@event.listens_for(Order, "before_insert")
@event.listens_for(Order, "before_update")
def _recompute_final_amount(mapper, connection, target: Order):
    target.final_amount = order_final_amount(target.total_amount, target.shipping_cost, target.tax_amount)
    target.updated_at = utcnow()
