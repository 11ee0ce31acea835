from datetime import datetime
from pydantic import BaseModel

class PaymentResponse(BaseModel):
    id: int
    order_number: str
    amount: float
    method: str
    status: str
    transaction_id: str | None
    created_at: datetime

    class Config:
        from_attributes = True
