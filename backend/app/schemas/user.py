"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class UserBase(BaseModel):
    """Base user schema."""
    username: str
    email: EmailStr
    name: Optional[str] = None


class UserResponse(UserBase):
    """Schema for user response."""
    id: int
    venmo_username: Optional[str] = None
    paypal_email: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentInfoUpdate(BaseModel):
    """Schema for updating the payment handles shown to payers."""
    venmo_username: Optional[str] = None
    paypal_email: Optional[EmailStr] = None
