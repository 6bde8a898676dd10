"""
Trip and trip membership models.
"""
from sqlalchemy import (
    Column, String, Date, DateTime, Boolean, Numeric, Enum as SQLEnum,
    ForeignKey, Integer, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
import enum


class RSVPStatus(str, enum.Enum):
    """Attendance lifecycle of a trip member."""
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    CONFIRMED = "confirmed"
    DECLINED = "declined"


class PaymentStatus(str, enum.Enum):
    """Down-payment lifecycle of a trip member."""
    NONE = "none"
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class PaymentMethod(str, enum.Enum):
    """How money changes hands."""
    VENMO = "venmo"
    PAYPAL = "paypal"
    CASH = "cash"
    NONE = "none"


class Trip(BaseModel):
    """Trip model representing a group travel event."""
    __tablename__ = "trips"

    name = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    requires_down_payment = Column(Boolean, default=False, nullable=False)
    down_payment_amount = Column(Numeric(10, 2), nullable=True)

    # Relationships
    organizer = relationship("User", foreign_keys=[organizer_id])
    members = relationship("TripMember", back_populates="trip", cascade="all, delete-orphan")
    activities = relationship("Activity", back_populates="trip", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete-orphan")
    settlements = relationship("Settlement", back_populates="trip", cascade="all, delete-orphan")


class TripMember(BaseModel):
    """Membership of a user in a trip, with RSVP and payment state."""
    __tablename__ = "trip_members"
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_trip_member"),)

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    rsvp_status = Column(SQLEnum(RSVPStatus), default=RSVPStatus.PENDING, nullable=False)
    rsvp_date = Column(DateTime, nullable=True)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.NONE, nullable=False)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.NONE, nullable=False)
    payment_amount = Column(Numeric(10, 2), nullable=True)
    payment_submitted_at = Column(DateTime, nullable=True)
    payment_confirmed_at = Column(DateTime, nullable=True)

    # Relationships
    trip = relationship("Trip", back_populates="members")
    user = relationship("User", back_populates="trips")

    @property
    def is_organizer(self) -> bool:
        return self.trip is not None and self.trip.organizer_id == self.user_id

    @property
    def can_manage(self) -> bool:
        """Organizer or admin."""
        return self.is_admin or self.is_organizer
