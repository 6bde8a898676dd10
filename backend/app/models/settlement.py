"""
Settlement model: a payment from one member to another.
"""
from sqlalchemy import Column, String, Text, DateTime, Numeric, Enum as SQLEnum, ForeignKey, Integer
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.trip import PaymentMethod
import enum


class SettlementStatus(str, enum.Enum):
    """Settlement lifecycle. CONFIRMED and REJECTED are terminal."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class Settlement(BaseModel):
    """Directed payment record between two trip members."""
    __tablename__ = "settlements"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.NONE, nullable=False)
    payment_link = Column(Text, nullable=True)
    status = Column(SQLEnum(SettlementStatus), default=SettlementStatus.PENDING, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    initiated_at = Column(DateTime, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)
    confirmed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    trip = relationship("Trip", back_populates="settlements")
    payer = relationship("User", foreign_keys=[payer_id])
    payee = relationship("User", foreign_keys=[payee_id])
