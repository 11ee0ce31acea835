from datetime import datetime
from typing import List, Literal
from pydantic import BaseModel, Field

ProductCategory = Literal["coffee", "spices", "food", "clothing", "crafts", "other"]


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    price: float = Field(ge=0)
    category: ProductCategory = "other"
    images: List[str] = []
    stock: int = Field(default=0, ge=0)


class StockAdjust(BaseModel):
    delta: int # negative to decrement, positive to restore


class ProductResponse(BaseModel):
    id: int
    name: str
    description: str
    price: float
    category: str
    images: List[str]
    stock: int
    in_stock: bool
    stock_status: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
