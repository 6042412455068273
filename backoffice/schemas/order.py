from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..enums import OrderStatus, PaymentStatus
from ..utils.text import strip_html


class OrderItemResponse(BaseModel):
    """Schema for order item responses"""
    id: int
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    quantity: int
    price: float
    discount: float
    total: float

    class Config:
        from_attributes = True


class OrderCustomer(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: float
    tax: float
    shipping_cost: float
    discount: float
    total: float
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderDetail(OrderResponse):
    """Schema for detailed order responses"""
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    customer: Optional[OrderCustomer] = None
    items: List[OrderItemResponse] = []
    notes: Optional[str] = None
    admin_comment: Optional[str] = None
    allowed_transitions: List[OrderStatus] = []


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=2000)
    admin_comment: Optional[str] = Field(None, max_length=2000)

    @field_validator('notes', 'admin_comment', mode='before')
    @classmethod
    def sanitize_text(cls, v):
        return strip_html(v)


class OrderFilters(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    customer_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    total_min: Optional[float] = Field(None, ge=0)
    total_max: Optional[float] = Field(None, ge=0)


class OrderTransitions(BaseModel):
    order_id: int
    current_status: OrderStatus
    allowed_transitions: List[OrderStatus]
    is_terminal: bool


class OrderUpdate(BaseModel):
    """
    General order edit. Status is not accepted here, it only changes through
    the status endpoint so every change follows the lifecycle.
    """
    payment_status: Optional[PaymentStatus] = None
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=2000)
    admin_comment: Optional[str] = Field(None, max_length=2000)

    class Config:
        extra = "forbid"

    @field_validator('notes', 'admin_comment', mode='before')
    @classmethod
    def sanitize_text(cls, v):
        return strip_html(v)
