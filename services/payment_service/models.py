from sqlalchemy import Column, DateTime, Float, Integer, String
from shared.config.database import Base
from shared.lifecycle import utcnow

class Payment(Base):
    """Ledger row for an approved authorization, written with its order."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    method = Column(String, nullable=False)
    status = Column(String, default="paid") # paid, refunded
    transaction_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
