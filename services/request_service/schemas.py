from datetime import date, datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, StringConstraints

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

RequestStatus = Literal[
    "pending", "reviewing", "approved", "rejected", "processing",
    "ordered", "shipped", "delivered", "cancelled",
]
RequestCategory = Literal["electronics", "clothing", "books", "home", "sports", "beauty", "toys", "other"]
Urgency = Literal["low", "medium", "high"]


class RequestAddress(BaseModel):
    name: RequiredText
    street: RequiredText
    city: RequiredText
    state: Optional[str] = None
    country: RequiredText = "Ethiopia"
    zip_code: Optional[str] = None
    phone: Optional[str] = None


class RequestCreate(BaseModel):
    product_url: HttpUrl
    product_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=200)]
    product_price: RequiredText
    quantity: int = Field(default=1, ge=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: RequestCategory = "other"
    urgency: Urgency = "medium"
    shipping_address: RequestAddress
    user_notes: Optional[str] = None
    images: List[str] = []


class RequestEdit(BaseModel):
    product_name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=200)]] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    urgency: Optional[Urgency] = None
    shipping_address: Optional[RequestAddress] = None
    user_notes: Optional[str] = None


class RequestCancel(BaseModel):
    reason: Optional[str] = None


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    final_price: Optional[float] = Field(default=None, ge=0)
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    service_fee: Optional[float] = Field(default=None, ge=0)
    assigned_to: Optional[str] = None
    location: Optional[str] = None


class RequestTrackingPatch(BaseModel):
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    estimated_delivery: Optional[date] = None
    status: Optional[str] = None
    message: Optional[str] = None
    location: Optional[str] = None


class RequestTrackingUpdateResponse(BaseModel):
    status: str
    message: str
    location: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class RequestResponse(BaseModel):
    id: int
    request_number: str
    user_id: str
    product_url: str
    product_name: str
    product_price: str
    quantity: int
    description: Optional[str]
    category: str
    urgency: str
    status: str
    estimated_price: Optional[float]
    final_price: Optional[float]
    shipping_cost: float
    service_fee: float
    total_cost: Optional[float]
    shipping_address: dict
    tracking_number: Optional[str]
    carrier: Optional[str]
    estimated_delivery: Optional[date]
    tracking_updates: List[RequestTrackingUpdateResponse]
    admin_notes: Optional[str]
    user_notes: Optional[str]
    rejection_reason: Optional[str]
    assigned_to: Optional[str]
    approved_at: Optional[datetime]
    processed_at: Optional[datetime]
    delivered_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class RequestListResponse(BaseModel):
    requests: List[RequestResponse]
    pagination: Pagination


class RequestStats(BaseModel):
    total_requests: int
    pending_requests: int
    approved_requests: int
    completed_requests: int
    status_distribution: dict[str, int]
    category_distribution: dict[str, int]
    avg_processing_days: float
