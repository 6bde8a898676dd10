"""
Pydantic schemas for Settlement entity and optimizer output.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from app.models.trip import PaymentMethod
from app.models.settlement import SettlementStatus
from app.schemas.expense import UserBalanceResponse


class SettlementCreate(BaseModel):
    """Schema for initiating a settlement. The payer is the current user."""
    payee_id: int
    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    trip_id: int
    payer_id: int
    payee_id: int
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    payment_link: Optional[str] = None
    status: SettlementStatus
    notes: Optional[str] = None
    initiated_at: datetime
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[int] = None

    class Config:
        from_attributes = True


class OptimizedTransaction(BaseModel):
    """Schema for a single suggested payment."""
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: Decimal

    class Config:
        from_attributes = True


class SettlementStats(BaseModel):
    """Schema for settlement plan statistics."""
    total_transactions: int
    total_amount: Decimal
    users_involved: int
    average_transaction_amount: Decimal

    class Config:
        from_attributes = True


class OptimizedSettlementResponse(BaseModel):
    """Schema for the optimized settlement plan of a trip."""
    transactions: List[OptimizedTransaction]
    stats: SettlementStats
    is_valid: bool
    warning: Optional[str] = None
    original_balances: List[UserBalanceResponse] = []


class UserRecommendationsResponse(BaseModel):
    """Schema for the payments a single user should make."""
    recommendations: List[OptimizedTransaction]


class SettlementOption(BaseModel):
    """Schema for one way of paying a payee."""
    method: PaymentMethod
    display_name: str
    payment_link: Optional[str] = None
