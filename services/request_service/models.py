from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, event
from sqlalchemy.orm import relationship
from shared.config.database import Base
from shared.lifecycle import TrackingUpdateMixin, utcnow
from shared.pricing import request_total

REQUEST_STATUSES = (
    "pending", "reviewing", "approved", "rejected", "processing",
    "ordered", "shipped", "delivered", "cancelled",
)
REQUEST_CATEGORIES = ("electronics", "clothing", "books", "home", "sports", "beauty", "toys", "other")
URGENCY_TIERS = ("low", "medium", "high")


class RequestTrackingUpdate(TrackingUpdateMixin, Base):
    __tablename__ = "request_tracking_updates"

    request_id = Column(Integer, ForeignKey("requests.id"), nullable=False, index=True)

    request = relationship("ProductRequest", back_populates="tracking_updates")


class ProductRequest(Base):
    """A customer's ask to source an item that is not in the catalog."""
    __tablename__ = "requests"

    tracking_update_class = RequestTrackingUpdate

    id = Column(Integer, primary_key=True, index=True)
    request_number = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    product_url = Column(String, nullable=False)
    product_name = Column(String(200), nullable=False)
    product_price = Column(String, nullable=False) # as typed by the customer, e.g. "€100"
    quantity = Column(Integer, nullable=False, default=1)
    description = Column(String(1000), nullable=True)
    category = Column(String, nullable=False, default="other")
    urgency = Column(String, nullable=False, default="medium")
    images = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default="pending")
    estimated_price = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    shipping_cost = Column(Float, nullable=False, default=0)
    service_fee = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=True)

    shipping_address = Column(JSON, nullable=False)

    tracking_number = Column(String, nullable=True)
    carrier = Column(String, nullable=True)
    estimated_delivery = Column(Date, nullable=True)

    admin_notes = Column(String, nullable=True)
    user_notes = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)
    assigned_to = Column(String, nullable=True)

    # Stamped the first time the status is reached, never overwritten
    approved_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tracking_updates = relationship(
        "RequestTrackingUpdate", back_populates="request", lazy="selectin",
        cascade="all, delete-orphan", order_by="RequestTrackingUpdate.id"
    )

    @property
    def base_price(self) -> float | None:
        return self.final_price or self.estimated_price


@event.listens_for(ProductRequest, "before_insert")
@event.listens_for(ProductRequest, "before_update")
def _recompute_total_cost(mapper, connection, target: ProductRequest):
    if target.base_price:
        target.total_cost = request_total(target.base_price, target.shipping_cost, target.service_fee)
    target.updated_at = utcnow()
