"""
User model. Accounts are provisioned by the auth service.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class User(BaseModel):
    """User with optional payment handles used for settlement deep links."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    venmo_username = Column(String(100), nullable=True)
    paypal_email = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    trips = relationship("TripMember", back_populates="user")

    @property
    def display_name(self) -> str:
        return self.name or self.username
