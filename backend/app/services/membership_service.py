"""
Member RSVP, down payment and removal workflows.

Every write validates the (rsvp, payment) pair through member_state.
Organizer decisions on a submitted payment are guarded UPDATEs on
payment_status == submitted, so a payment is confirmed or rejected once.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.exceptions import ConflictError, ValidationError
from app.core.utils import ZERO, SETTLEMENT_EPSILON, format_money
from app.models.activity import Activity, ActivityPaymentType
from app.models.expense import Expense
from app.models.trip import TripMember, RSVPStatus, PaymentStatus, PaymentMethod
from app.models.user import User
from app.services.activity_service import detach_member_activities
from app.services.balance_service import compute_balances
from app.services.member_state import plan_transition
from app.services.trip_service import get_trip, get_member, find_member

logger = logging.getLogger(__name__)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def invite_member(trip_id: int, user: User, db: Session) -> TripMember:
    """Add a user to the trip with a pending RSVP."""
    trip = get_trip(trip_id, db)
    if find_member(trip_id, user.id, db):
        raise ConflictError(f"{user.display_name} is already a member of this trip")
    member = TripMember(
        user=user,
        rsvp_status=RSVPStatus.PENDING,
        payment_status=PaymentStatus.NONE,
        payment_method=PaymentMethod.NONE
    )
    trip.members.append(member)
    _commit(db)
    db.refresh(member)
    logger.info(f"User {user.id} invited to trip {trip_id}")
    return member


def respond_to_rsvp(trip_id: int, user_id: int, accept: bool, db: Session) -> TripMember:
    """
    Accept or decline an invitation.
    Accepting a trip that needs a down payment parks the member in
    awaiting_payment until the organizer confirms their payment.
    """
    trip = get_trip(trip_id, db)
    member = get_member(trip_id, user_id, db)

    if accept and trip.requires_down_payment:
        rsvp, payment = plan_transition(member, RSVPStatus.AWAITING_PAYMENT, PaymentStatus.PENDING)
        member.payment_amount = trip.down_payment_amount
    elif accept:
        rsvp, payment = plan_transition(member, RSVPStatus.CONFIRMED)
    else:
        withdraw = PaymentStatus.NONE if member.payment_status == PaymentStatus.PENDING else None
        rsvp, payment = plan_transition(member, RSVPStatus.DECLINED, withdraw)

    member.rsvp_status = rsvp
    member.payment_status = payment
    member.rsvp_date = datetime.utcnow()
    _commit(db)
    db.refresh(member)
    logger.info(f"User {user_id} RSVP for trip {trip_id}: {rsvp.value}")
    return member


def submit_payment(trip_id: int, user_id: int, method: PaymentMethod, db: Session) -> TripMember:
    """Member reports their down payment as sent; it waits for the organizer."""
    trip = get_trip(trip_id, db)
    if not trip.requires_down_payment:
        raise ValidationError("This trip does not require a down payment")
    if method == PaymentMethod.NONE:
        raise ValidationError("Choose venmo, paypal or cash")

    member = get_member(trip_id, user_id, db)
    if member.payment_status == PaymentStatus.SUBMITTED:
        raise ConflictError("Payment already submitted and waiting for the organizer")
    rsvp, payment = plan_transition(member, RSVPStatus.AWAITING_PAYMENT, PaymentStatus.SUBMITTED)

    member.rsvp_status = rsvp
    member.payment_status = payment
    member.payment_method = method
    member.payment_amount = trip.down_payment_amount
    member.payment_submitted_at = datetime.utcnow()
    _commit(db)
    db.refresh(member)
    logger.info(f"User {user_id} submitted {method.value} down payment for trip {trip_id}")
    return member


def _decide_payment(trip_id: int, user_id: int, values: dict, db: Session) -> int:
    """Apply values only if the payment is still submitted. Returns rows updated."""
    return db.query(TripMember).filter(
        TripMember.trip_id == trip_id,
        TripMember.user_id == user_id,
        TripMember.payment_status == PaymentStatus.SUBMITTED
    ).update(values, synchronize_session=False)


def confirm_member_payment(trip_id: int, user_id: int, db: Session) -> TripMember:
    """submitted -> confirmed; the member becomes a confirmed attendee."""
    get_trip(trip_id, db)
    member = get_member(trip_id, user_id, db)
    plan_transition(member, RSVPStatus.CONFIRMED, PaymentStatus.CONFIRMED)

    now = datetime.utcnow()
    try:
        updated = _decide_payment(trip_id, user_id, {
            TripMember.payment_status: PaymentStatus.CONFIRMED,
            TripMember.rsvp_status: RSVPStatus.CONFIRMED,
            TripMember.payment_confirmed_at: now,
            TripMember.updated_at: now,
        }, db)
        if updated == 0:
            raise ConflictError("Payment is no longer waiting for confirmation")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(member)
    logger.info(f"Down payment of user {user_id} confirmed for trip {trip_id}")
    return member


def reject_member_payment(trip_id: int, user_id: int, db: Session) -> TripMember:
    """
    submitted -> rejected and RSVP declined, in one transaction with the
    cleanup of what the member created: prepaid activities are deleted, the
    rest are attributed to the removed-user placeholder.
    """
    get_trip(trip_id, db)
    member = get_member(trip_id, user_id, db)
    plan_transition(member, RSVPStatus.DECLINED, PaymentStatus.REJECTED)

    try:
        updated = _decide_payment(trip_id, user_id, {
            TripMember.payment_status: PaymentStatus.REJECTED,
            TripMember.rsvp_status: RSVPStatus.DECLINED,
            TripMember.updated_at: datetime.utcnow(),
        }, db)
        if updated == 0:
            raise ConflictError("Payment is no longer waiting for confirmation")
        cleanup = detach_member_activities(trip_id, user_id, db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(member)
    logger.info(
        f"Down payment of user {user_id} rejected for trip {trip_id}; "
        f"deleted activities {cleanup['deleted']}, reattributed {cleanup['reattributed']}"
    )
    return member


def allow_rejoin(trip_id: int, user_id: int, db: Session) -> TripMember:
    """Reset a declined member so they can RSVP again."""
    get_trip(trip_id, db)
    member = get_member(trip_id, user_id, db)
    if member.rsvp_status != RSVPStatus.DECLINED:
        raise ConflictError("Only declined members can be invited to rejoin")
    payment = PaymentStatus.NONE if member.payment_status == PaymentStatus.REJECTED else None
    rsvp, payment = plan_transition(member, RSVPStatus.PENDING, payment)

    member.rsvp_status = rsvp
    member.payment_status = payment
    member.payment_method = PaymentMethod.NONE
    member.payment_amount = None
    member.payment_submitted_at = None
    member.payment_confirmed_at = None
    member.rsvp_date = None
    _commit(db)
    db.refresh(member)
    logger.info(f"User {user_id} may rejoin trip {trip_id}")
    return member


def _prepaid_activities_owed(trip_id: int, user_id: int, db: Session) -> List[dict]:
    """Prepaid activities organized by the user that others still owe money for."""
    activities = db.query(Activity).filter(
        Activity.trip_id == trip_id,
        Activity.created_by == user_id,
        Activity.payment_type == ActivityPaymentType.PREPAID
    ).all()

    owed = []
    for activity in activities:
        expenses = db.query(Expense).filter(
            Expense.activity_id == activity.id,
            Expense.paid_by == user_id
        ).all()
        amount = sum(
            (share.amount for expense in expenses for share in expense.shares if share.user_id != user_id),
            ZERO
        )
        if amount > SETTLEMENT_EPSILON:
            owed.append({
                "activity_id": activity.id,
                "activity_name": activity.name,
                "amount_owed": amount,
            })
    return owed


def analyze_removal_eligibility(trip_id: int, user_id: int, db: Session) -> dict:
    """
    Decide whether a member can be removed.
    Blocked while others owe them for prepaid activities they organized, or
    while they still owe money on manual expenses.
    """
    trip = get_trip(trip_id, db)
    get_member(trip_id, user_id, db)

    balances = compute_balances(trip_id, db)
    entry = balances.get(user_id)
    name = entry.name if entry else "Unknown"
    balance = entry.net_balance if entry else ZERO

    # Charges already paid back through settlements no longer count
    prepaid_owed = _prepaid_activities_owed(trip_id, user_id, db)
    charged = sum((item["amount_owed"] for item in prepaid_owed), ZERO)
    prepaid_balance = min(charged, max(balance, ZERO))
    if prepaid_balance <= SETTLEMENT_EPSILON:
        prepaid_balance = ZERO
        prepaid_owed = []
    manual_balance = balance - prepaid_balance

    can_remove = True
    reason: Optional[str] = None
    suggestions: List[str] = []

    if user_id == trip.organizer_id:
        can_remove = False
        reason = "The trip organizer cannot be removed. Transfer the trip or delete it instead."
    elif prepaid_balance > SETTLEMENT_EPSILON:
        can_remove = False
        reason = (
            f"{name} is owed {format_money(prepaid_balance)} for prepaid activities they organized. "
            "Please cancel or reassign those activities before removing them."
        )
        suggestions.append("Reassign organizer to another trip member")
        suggestions.append("Cancel the prepaid activities")
    elif manual_balance < -SETTLEMENT_EPSILON:
        can_remove = False
        reason = (
            f"{name} still owes {format_money(manual_balance)} in unsettled expenses. "
            "Please settle up before removing them."
        )
        suggestions.append("Use the settlement workflow to clear outstanding balances")

    return {
        "can_remove": can_remove,
        "reason": reason,
        "balance": balance,
        "manual_expense_balance": manual_balance,
        "prepaid_activity_balance": prepaid_balance,
        "prepaid_activities_owed": prepaid_owed,
        "suggestions": suggestions,
    }


def remove_member(trip_id: int, user_id: int, db: Session, remove_activities: bool = False) -> dict:
    """
    Remove a member once analyze_removal_eligibility allows it.
    Expense and settlement history stays so other balances do not move:
    prepaid activities that charged others have been paid back by now and
    are kept with the removed-user placeholder.
    """
    eligibility = analyze_removal_eligibility(trip_id, user_id, db)
    if not eligibility["can_remove"]:
        raise ConflictError(eligibility["reason"] or "Member cannot be removed")

    member = get_member(trip_id, user_id, db)
    try:
        cleanup = detach_member_activities(
            trip_id, user_id, db, delete_all=remove_activities, keep_shared_prepaid=True
        )
        db.delete(member)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"User {user_id} removed from trip {trip_id}")
    return {
        "removed_activities": cleanup["deleted"],
        "reattributed_activities": cleanup["reattributed"],
    }

