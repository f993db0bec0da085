
import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field
from storefront.schema.full_schema import OrderStatus, PaymentStatus


class PaymentMethod(str, enum.Enum):
    CREDIT = "credit"
    PAYPAL = "paypal"
    APPLE = "apple"


class Address(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(..., min_length=10, max_length=32)
    address: str = Field(..., min_length=5, max_length=500)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=100)
    zip_code: str = Field(..., min_length=5, max_length=16)
    notes: Optional[str] = Field(None, max_length=1000)


class CheckoutIn(BaseModel):
    shipping_address: Address
    # omitted billing address means "same as shipping"
    billing_address: Optional[Address] = None
    payment_method: PaymentMethod = PaymentMethod.CREDIT


class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    gift_box_id: Optional[int] = None
    product_name: str
    price: Decimal
    quantity: int
    pack_size: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: int
    public_id: uuid.UUID
    owner_id: Optional[str] = None
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: Decimal
    shipping_address: dict
    billing_address: Optional[dict] = None
    payment_method: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: Optional[List[OrderItemOut]] = None

    model_config = {"from_attributes": True}


class OrderStatusIn(BaseModel):
    status: OrderStatus


class PaymentStatusIn(BaseModel):
    payment_status: PaymentStatus
