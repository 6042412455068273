from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class CustomerFilters(BaseModel):
    search: Optional[str] = None
    is_active: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class CustomerResponse(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerDetail(CustomerResponse):
    # Statistics
    total_orders: int = 0
    total_spent: float = 0.0
    last_order_date: Optional[datetime] = None


class CustomerUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
