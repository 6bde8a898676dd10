"""
Trip and member lookups shared by the services.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.trip import Trip, TripMember, RSVPStatus, PaymentStatus, PaymentMethod
from app.models.user import User


def get_trip(trip_id: int, db: Session) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")
    return trip


def find_member(trip_id: int, user_id: int, db: Session) -> Optional[TripMember]:
    return db.query(TripMember).filter(
        TripMember.trip_id == trip_id,
        TripMember.user_id == user_id
    ).first()


def get_member(trip_id: int, user_id: int, db: Session) -> TripMember:
    member = find_member(trip_id, user_id, db)
    if not member:
        raise NotFoundError(f"User {user_id} is not a member of trip {trip_id}")
    return member


def get_confirmed_member_ids(trip_id: int, db: Session) -> List[int]:
    rows = db.query(TripMember.user_id).filter(
        TripMember.trip_id == trip_id,
        TripMember.rsvp_status == RSVPStatus.CONFIRMED
    ).all()
    return [row.user_id for row in rows]


def create_trip(
    organizer: User,
    name: str,
    start_date,
    end_date,
    db: Session,
    destination: Optional[str] = None,
    currency: Optional[str] = None,
    requires_down_payment: bool = False,
    down_payment_amount=None
) -> Trip:
    """Create a trip; the organizer joins as a confirmed admin member."""
    trip = Trip(
        name=name,
        destination=destination,
        start_date=start_date,
        end_date=end_date,
        organizer_id=organizer.id,
        currency=(currency or settings.DEFAULT_CURRENCY).upper(),
        requires_down_payment=requires_down_payment,
        down_payment_amount=down_payment_amount if requires_down_payment else None
    )
    trip.members.append(TripMember(
        user=organizer,
        is_admin=True,
        rsvp_status=RSVPStatus.CONFIRMED,
        payment_status=PaymentStatus.NONE,
        payment_method=PaymentMethod.NONE
    ))
    try:
        db.add(trip)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(trip)
    return trip
