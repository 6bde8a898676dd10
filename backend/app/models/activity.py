"""
Itinerary activity model.
"""
from sqlalchemy import Column, String, DateTime, Numeric, Text, Enum as SQLEnum, ForeignKey, Integer
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
import enum


class ActivityPaymentType(str, enum.Enum):
    """How an activity is paid for."""
    FREE = "free"
    PAYMENT_ONSITE = "payment_onsite"
    PREPAID = "prepaid"


class Activity(BaseModel):
    """Activity on a trip itinerary."""
    __tablename__ = "activities"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=True)
    payment_type = Column(SQLEnum(ActivityPaymentType), default=ActivityPaymentType.FREE, nullable=False)
    cost = Column(Numeric(10, 2), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # NULL once the creator is removed

    # Relationships
    trip = relationship("Trip", back_populates="activities")
    creator = relationship("User", foreign_keys=[created_by])
    expenses = relationship("Expense", back_populates="activity", cascade="all")
