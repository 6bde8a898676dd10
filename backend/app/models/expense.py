"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Expense(BaseModel):
    """Expense paid by one member and shared by several."""
    __tablename__ = "expenses"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    category = Column(String(50), nullable=False, default="other")
    description = Column(Text, nullable=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=True, index=True)  # Set for prepaid activity charges

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    payer = relationship("User", foreign_keys=[paid_by])
    activity = relationship("Activity", back_populates="expenses")
    shares = relationship("ExpenseShare", back_populates="expense", cascade="all, delete-orphan")

    @property
    def is_activity_linked(self) -> bool:
        return self.activity_id is not None


class ExpenseShare(BaseModel):
    """Amount a single user owes for an expense."""
    __tablename__ = "expense_shares"

    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="shares")
    user = relationship("User")
