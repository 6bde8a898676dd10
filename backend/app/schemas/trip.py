"""
Pydantic schemas for Trip and TripMember entities.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from app.models.trip import RSVPStatus, PaymentStatus, PaymentMethod


class TripBase(BaseModel):
    """Base trip schema."""
    name: str
    destination: Optional[str] = None
    start_date: date
    end_date: date
    currency: Optional[str] = None
    requires_down_payment: bool = False
    down_payment_amount: Optional[Decimal] = Field(default=None, gt=0)


class TripCreate(TripBase):
    """Schema for trip creation."""
    pass


class TripResponse(TripBase):
    """Schema for trip response."""
    id: int
    organizer_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TripMemberResponse(BaseModel):
    """Schema for trip member response."""
    user_id: int
    username: str
    name: str
    is_admin: bool
    is_organizer: bool
    rsvp_status: RSVPStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    payment_amount: Optional[Decimal] = None
    payment_submitted_at: Optional[datetime] = None
    payment_confirmed_at: Optional[datetime] = None


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with members."""
    members: List[TripMemberResponse] = []


class MemberInvite(BaseModel):
    """Schema for member invitation."""
    username: str


class RSVPUpdate(BaseModel):
    """Schema for a member answering their invitation."""
    accept: bool


class PaymentSubmit(BaseModel):
    """Schema for a member submitting their down payment."""
    payment_method: PaymentMethod


class PrepaidActivityOwed(BaseModel):
    """A prepaid activity organized by a member that others still owe for."""
    activity_id: int
    activity_name: str
    amount_owed: Decimal


class RemovalEligibilityResponse(BaseModel):
    """Schema for member removal eligibility."""
    can_remove: bool
    reason: Optional[str] = None
    balance: Decimal
    manual_expense_balance: Decimal
    prepaid_activity_balance: Decimal
    prepaid_activities_owed: List[PrepaidActivityOwed] = []
    suggestions: List[str] = []
