from datetime import date, datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, StringConstraints
from pydantic.alias_generators import to_camel

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
PaymentMethod = Literal["credit_card", "debit_card", "paypal", "bank_transfer", "cash_on_delivery"]


class ShippingAddress(BaseModel):
    name: RequiredText
    street: RequiredText
    city: RequiredText
    state: Optional[str] = None
    country: RequiredText
    zip_code: RequiredText
    phone: Optional[str] = None
    email: Optional[str] = None


class BillingAddress(BaseModel):
    name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class PaymentInfo(BaseModel):
    card_number: Optional[str] = None
    expiry_date: Optional[str] = None
    cvv: Optional[str] = None
    card_holder: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(min_length=1)
    shipping_address: ShippingAddress
    billing_address: Optional[BillingAddress] = None
    payment_method: PaymentMethod = "credit_card"
    payment_info: Optional[PaymentInfo] = None
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    admin_notes: Optional[str] = None
    location: Optional[str] = None


class OrderTrackingPatch(BaseModel):
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    estimated_delivery: Optional[date] = None
    # Free-form: carrier stages such as in_transit are not order statuses
    status: Optional[str] = None
    message: Optional[str] = None
    location: Optional[str] = None


class OrderEdit(BaseModel):
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[BillingAddress] = None
    notes: Optional[str] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: float
    name: Optional[str]
    image: Optional[str]

    class Config:
        from_attributes = True


class TrackingUpdateResponse(BaseModel):
    status: str
    message: str
    location: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: str
    items: List[OrderItemResponse]
    total_amount: float
    shipping_cost: float
    tax_amount: float
    final_amount: float
    status: str
    payment_status: str
    payment_method: str
    shipping_address: dict
    billing_address: Optional[dict]
    tracking_number: Optional[str]
    carrier: Optional[str]
    estimated_delivery: Optional[date]
    tracking_updates: List[TrackingUpdateResponse]
    notes: Optional[str]
    admin_notes: Optional[str]
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    pagination: Pagination


class OrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    total_revenue: float
    status_distribution: dict[str, int]


class TrackRequest(BaseModel):
    tracking_number: RequiredText


# --- Public tracking view (camelCase wire shape consumed by the tracking page) ---

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TrackingCustomer(CamelModel):
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]


class TrackingAddress(CamelModel):
    street: Optional[str]
    city: Optional[str]
    country: Optional[str]


class TrackingItem(CamelModel):
    id: int
    name: Optional[str]
    quantity: int
    price: str
    image: Optional[str]


class TrackingEvent(CamelModel):
    status: str
    message: str
    location: Optional[str]
    timestamp: str
    completed: bool = True


class TrackingDetails(CamelModel):
    carrier: str
    tracking_number: str
    updates: List[TrackingEvent]


class TrackingView(CamelModel):
    order_number: str
    status: str
    estimated_delivery: Optional[str]
    current_location: str
    customer: TrackingCustomer
    shipping_address: TrackingAddress
    items: List[TrackingItem]
    tracking: TrackingDetails
