"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal


class ExpenseCreate(BaseModel):
    """
    Schema for expense creation.
    Provide either split_with (equal split) or shares (user id -> amount).
    """
    title: str
    amount: Decimal = Field(gt=0)
    category: str = "other"
    description: Optional[str] = None
    paid_by: int
    split_with: Optional[List[int]] = None
    shares: Optional[Dict[int, Decimal]] = None


class ExpenseShareResponse(BaseModel):
    """Schema for expense share response."""
    user_id: int
    amount: Decimal

    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    trip_id: int
    title: str
    amount: Decimal
    currency: str
    category: str
    description: Optional[str] = None
    paid_by: int
    created_by: Optional[int] = None
    activity_id: Optional[int] = None
    shares: List[ExpenseShareResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class UserBalanceResponse(BaseModel):
    """Net position of one user in a trip. Positive = is owed money."""
    user_id: int
    name: str
    total_paid: Decimal
    total_owed: Decimal
    settlements_paid: Decimal
    settlements_received: Decimal
    net_balance: Decimal
    is_current_member: bool

    class Config:
        from_attributes = True
