# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from decimal import Decimal
from datetime import datetime

from storefront.domain.order_status import OrderStatus


# ---------- users ----------

class UserCreate(BaseModel):
    id: int = Field(..., gt=0, description="User id issued by the identity provider")
    name: str = Field(..., min_length=1, max_length=100)
    role: Literal["USER", "ADMIN"] = "USER"


class UserRead(BaseModel):
    id: int
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


# ---------- catalog ----------

class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    is_active: bool = True


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    price: Decimal
    stock: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class StockAdjustIn(BaseModel):
    """Positive delta restocks, negative delta takes units off the shelf."""

    delta: int


# ---------- cart ----------

class ItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    # validated by the service so a bad quantity is reported as invalid_request
    quantity: int


class CartItemUpdate(BaseModel):
    quantity: int


class MergeCartIn(BaseModel):
    items: List[ItemIn]


class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartOut(BaseModel):
    cart_id: int
    user_id: int
    items: List[CartItemOut]
    total: Decimal
    updated_at: datetime | None = None


# ---------- orders ----------

class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str | None = None
    zip_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int
    # display-only; the catalog price at order time is what gets charged
    price: Decimal | None = None


class OrderCreate(BaseModel):
    items: List[OrderItemIn]
    shipping_address: ShippingAddress


class CheckoutIn(BaseModel):
    shipping_address: ShippingAddress


class OrderUpdate(BaseModel):
    status: OrderStatus | None = None
    shipping_address: ShippingAddress | None = None


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    total: Decimal
    shipping_address: ShippingAddress
    items: List[OrderItemOut]
    created_at: datetime
    updated_at: datetime


class OrderPage(BaseModel):
    data: List[OrderOut]
    total: int
    page: int
    limit: int


# ---------- payments ----------

class PaymentIntentIn(BaseModel):
    order_id: int = Field(..., gt=0)


class PaymentIntentOut(BaseModel):
    payment_id: int
    intent_id: str
    client_secret: str
    amount: Decimal
    currency: str


class PaymentConfirmIn(BaseModel):
    intent_id: str = Field(..., min_length=1)
    succeeded: bool


class PaymentOut(BaseModel):
    id: int
    order_id: int
    intent_id: str
    amount: Decimal
    currency: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
