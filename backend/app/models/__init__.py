"""Models package - Import all models for SQLAlchemy registration."""
from app.models.user import User
from app.models.trip import Trip, TripMember, RSVPStatus, PaymentStatus, PaymentMethod
from app.models.activity import Activity, ActivityPaymentType
from app.models.expense import Expense, ExpenseShare
from app.models.settlement import Settlement, SettlementStatus

__all__ = [
    "User",
    "Trip",
    "TripMember",
    "RSVPStatus",
    "PaymentStatus",
    "PaymentMethod",
    "Activity",
    "ActivityPaymentType",
    "Expense",
    "ExpenseShare",
    "Settlement",
    "SettlementStatus",
]
