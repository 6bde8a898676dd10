"""
Pydantic schemas for Activity entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from app.models.activity import ActivityPaymentType


class ActivityCreate(BaseModel):
    """Schema for activity creation."""
    name: str
    description: Optional[str] = None
    date: Optional[datetime] = None
    payment_type: ActivityPaymentType = ActivityPaymentType.FREE
    cost: Optional[Decimal] = Field(default=None, gt=0)
    participant_ids: List[int] = []  # Members charged for a prepaid activity


class ActivityResponse(BaseModel):
    """Schema for activity response."""
    id: int
    trip_id: int
    name: str
    description: Optional[str] = None
    date: Optional[datetime] = None
    payment_type: ActivityPaymentType
    cost: Optional[Decimal] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OwnershipTransfer(BaseModel):
    """Schema for reassigning an activity to another member."""
    new_owner_id: int
