from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class OrderItemStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class ProductInfo(BaseModel):
    name: str
    price: Decimal = Field(ge=0)
    image: Optional[str] = None
    stock_qty: int = Field(ge=0)


class CatalogProduct(ProductInfo):
    id: int


class CartEntry(BaseModel):
    product_id: int
    quantity: int
    product: ProductInfo


class CartMutation(BaseModel):
    product_id: int
    quantity: int  # signed delta


class CartMutationResult(BaseModel):
    quantity: int


class Shortfall(BaseModel):
    product_name: str
    available: int
    requested: int


class CartValidation(BaseModel):
    valid: bool
    errors: List[Shortfall] = []


class OrderItem(BaseModel):
    id: int
    order_id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    qty: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    status: OrderItemStatus


class Order(BaseModel):
    id: int
    customer: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItem] = []

    @model_validator(mode="after")
    def link_items(self):
        for item in self.items:
            if item.order_id is None:
                item.order_id = self.id
        return self


class StatusUpdate(BaseModel):
    status: OrderItemStatus


class CheckoutRequest(BaseModel):
    success_url: str
    cancel_url: str


class CheckoutSession(BaseModel):
    url: str


class SignIn(BaseModel):
    email: str
    password: str
