"""
Trip management routes: trips, members, RSVP and down payments.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from app.db.session import get_db
from app.models.user import User
from app.models.trip import Trip, TripMember
from app.schemas.trip import (
    TripCreate, TripResponse, TripDetailResponse, TripMemberResponse,
    MemberInvite, RSVPUpdate, PaymentSubmit, RemovalEligibilityResponse
)
from app.api.dependencies import get_current_user
from app.services import membership_service, trip_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])


def check_trip_access(trip_id: int, user_id: int, db: Session) -> Trip:
    """Check if user has access to trip."""
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )

    member = db.query(TripMember).filter(
        TripMember.trip_id == trip_id,
        TripMember.user_id == user_id
    ).first()

    if not member:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this trip"
        )

    return trip


def check_trip_manager(trip_id: int, user_id: int, db: Session) -> Trip:
    """Check that user is the trip organizer or an admin."""
    trip = check_trip_access(trip_id, user_id, db)
    member = trip_service.find_member(trip_id, user_id, db)
    if not member.can_manage:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the trip organizer or an admin can do this"
        )
    return trip


def check_self(user_id: int, current_user: User) -> None:
    if user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only update your own membership"
        )


def to_member_response(member: TripMember) -> TripMemberResponse:
    return TripMemberResponse(
        user_id=member.user_id,
        username=member.user.username,
        name=member.user.display_name,
        is_admin=member.is_admin,
        is_organizer=member.is_organizer,
        rsvp_status=member.rsvp_status,
        payment_status=member.payment_status,
        payment_method=member.payment_method,
        payment_amount=member.payment_amount,
        payment_submitted_at=member.payment_submitted_at,
        payment_confirmed_at=member.payment_confirmed_at
    )


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new trip. The creator becomes its organizer."""
    if trip_data.end_date < trip_data.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must not be before start date"
        )
    if trip_data.requires_down_payment and not trip_data.down_payment_amount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Trips requiring a down payment need a down payment amount"
        )

    trip = trip_service.create_trip(
        current_user,
        trip_data.name,
        trip_data.start_date,
        trip_data.end_date,
        db,
        destination=trip_data.destination,
        currency=trip_data.currency,
        requires_down_payment=trip_data.requires_down_payment,
        down_payment_amount=trip_data.down_payment_amount
    )
    logger.info(f"Trip {trip.id} created by user {current_user.id}")
    return trip


@router.get("", response_model=List[TripResponse])
async def list_trips(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all trips for current user."""
    trips = db.query(Trip).join(TripMember).filter(
        TripMember.user_id == current_user.id
    ).order_by(Trip.start_date.desc()).all()
    return trips


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get trip details with members."""
    trip = check_trip_access(trip_id, current_user.id, db)
    return TripDetailResponse(
        **TripResponse.model_validate(trip).model_dump(),
        members=[to_member_response(m) for m in sorted(trip.members, key=lambda m: m.user_id)]
    )


@router.get("/{trip_id}/members", response_model=List[TripMemberResponse])
async def list_members(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List trip members with their RSVP and payment status."""
    trip = check_trip_access(trip_id, current_user.id, db)
    return [to_member_response(m) for m in sorted(trip.members, key=lambda m: m.user_id)]


@router.post("/{trip_id}/members", response_model=TripMemberResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    trip_id: int,
    invite: MemberInvite,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Invite a user to the trip by username."""
    check_trip_manager(trip_id, current_user.id, db)

    user = db.query(User).filter(User.username == invite.username).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{invite.username}' not found"
        )

    member = membership_service.invite_member(trip_id, user, db)
    return to_member_response(member)


@router.put("/{trip_id}/members/{user_id}/rsvp", response_model=TripMemberResponse)
async def respond_to_rsvp(
    trip_id: int,
    user_id: int,
    rsvp: RSVPUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept or decline an invitation."""
    check_self(user_id, current_user)
    check_trip_access(trip_id, current_user.id, db)
    member = membership_service.respond_to_rsvp(trip_id, user_id, rsvp.accept, db)
    return to_member_response(member)


@router.post("/{trip_id}/members/{user_id}/payment", response_model=TripMemberResponse)
async def submit_payment(
    trip_id: int,
    user_id: int,
    payment: PaymentSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Report the down payment as sent."""
    check_self(user_id, current_user)
    check_trip_access(trip_id, current_user.id, db)
    member = membership_service.submit_payment(trip_id, user_id, payment.payment_method, db)
    return to_member_response(member)


@router.post("/{trip_id}/members/{user_id}/confirm-payment", response_model=TripMemberResponse)
async def confirm_payment(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Organizer confirms a submitted down payment."""
    check_trip_manager(trip_id, current_user.id, db)
    member = membership_service.confirm_member_payment(trip_id, user_id, db)
    return to_member_response(member)


@router.post("/{trip_id}/members/{user_id}/reject-payment", response_model=TripMemberResponse)
async def reject_payment(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Organizer rejects a submitted down payment; the member is declined."""
    check_trip_manager(trip_id, current_user.id, db)
    member = membership_service.reject_member_payment(trip_id, user_id, db)
    return to_member_response(member)


@router.post("/{trip_id}/members/{user_id}/rejoin", response_model=TripMemberResponse)
async def allow_rejoin(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Let a declined member RSVP again."""
    check_trip_manager(trip_id, current_user.id, db)
    member = membership_service.allow_rejoin(trip_id, user_id, db)
    return to_member_response(member)


@router.get("/{trip_id}/members/{user_id}/removal-eligibility", response_model=RemovalEligibilityResponse)
async def get_removal_eligibility(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Whether a member can be removed, and why not."""
    check_trip_access(trip_id, current_user.id, db)
    return membership_service.analyze_removal_eligibility(trip_id, user_id, db)


@router.delete("/{trip_id}/members/{user_id}")
async def remove_member(
    trip_id: int,
    user_id: int,
    remove_activities: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a member. remove_activities also deletes their non-prepaid activities."""
    check_trip_manager(trip_id, current_user.id, db)
    result = membership_service.remove_member(trip_id, user_id, db, remove_activities=remove_activities)
    return {"message": "Member removed successfully", **result}
