"""
Itinerary activities and the expenses charged for prepaid ones.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.core.utils import to_money, split_evenly
from app.models.activity import Activity, ActivityPaymentType
from app.models.trip import RSVPStatus
from app.services.expense_service import add_expense
from app.services.trip_service import get_trip, find_member

logger = logging.getLogger(__name__)


def get_activity(activity_id: int, db: Session) -> Activity:
    activity = db.query(Activity).filter(Activity.id == activity_id).first()
    if not activity:
        raise NotFoundError(f"Activity {activity_id} not found")
    return activity


def create_activity(
    trip_id: int,
    creator_id: int,
    name: str,
    db: Session,
    payment_type: ActivityPaymentType = ActivityPaymentType.FREE,
    cost=None,
    participant_ids: Sequence[int] = (),
    description: Optional[str] = None,
    date: Optional[datetime] = None
) -> Activity:
    """
    Create an activity. A prepaid activity is charged right away: the
    creator pays the cost and it is split evenly among the participants.
    """
    trip = get_trip(trip_id, db)
    creator = find_member(trip_id, creator_id, db)
    if not creator or creator.rsvp_status == RSVPStatus.DECLINED:
        raise PermissionDeniedError("Only trip members can add activities")

    amount = to_money(cost, field="cost") if cost is not None else None
    if payment_type == ActivityPaymentType.PREPAID and (amount is None or amount <= 0):
        raise ValidationError("Prepaid activities need a cost greater than zero")

    participants = list(participant_ids) or [creator_id]
    if payment_type == ActivityPaymentType.PREPAID:
        for user_id in participants:
            member = find_member(trip_id, user_id, db)
            if not member or member.rsvp_status == RSVPStatus.DECLINED:
                raise ValidationError(f"User {user_id} is not an active member of this trip")

    activity = Activity(
        trip=trip,
        name=name,
        description=description,
        date=date,
        payment_type=payment_type,
        cost=amount,
        created_by=creator_id
    )
    db.add(activity)

    if payment_type == ActivityPaymentType.PREPAID:
        add_expense(
            trip, f"Activity: {name}", amount, creator_id, split_evenly(amount, participants), db,
            created_by=creator_id, category="activities", activity=activity
        )

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(activity)
    logger.info(f"Activity {activity.id} ({payment_type.value}) created in trip {trip_id} by {creator_id}")
    return activity


def list_trip_activities(trip_id: int, db: Session) -> List[Activity]:
    get_trip(trip_id, db)
    return db.query(Activity).filter(
        Activity.trip_id == trip_id
    ).order_by(Activity.date, Activity.id).all()


def delete_activity(activity_id: int, actor_id: int, db: Session) -> None:
    """Creator, organizer or admin. Linked expenses go with the activity."""
    activity = get_activity(activity_id, db)
    member = find_member(activity.trip_id, actor_id, db)
    is_creator = activity.created_by == actor_id
    if not is_creator and not (member and member.can_manage):
        raise PermissionDeniedError("Only the creator, organizer or an admin can delete this activity")
    try:
        db.delete(activity)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Activity {activity_id} deleted by user {actor_id}")


def transfer_ownership(activity_id: int, actor_id: int, new_owner_id: int, db: Session) -> Activity:
    """
    Hand an activity to another confirmed member. For prepaid activities the
    new owner also becomes the payer of the linked expense.
    """
    activity = get_activity(activity_id, db)
    member = find_member(activity.trip_id, actor_id, db)
    if not member or not member.can_manage:
        raise PermissionDeniedError("Only the trip organizer or an admin can transfer activity ownership")

    new_owner = find_member(activity.trip_id, new_owner_id, db)
    if not new_owner or new_owner.rsvp_status != RSVPStatus.CONFIRMED:
        raise ValidationError("New owner must be a confirmed member of the trip")

    activity.created_by = new_owner_id
    for expense in activity.expenses:
        expense.paid_by = new_owner_id
        expense.created_by = new_owner_id
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(activity)
    logger.info(f"Activity {activity_id} transferred to user {new_owner_id}")
    return activity


def _charges_others(activity: Activity, user_id: int) -> bool:
    return any(share.user_id != user_id for expense in activity.expenses for share in expense.shares)


def detach_member_activities(
    trip_id: int,
    user_id: int,
    db: Session,
    delete_all: bool = False,
    keep_shared_prepaid: bool = False
) -> dict:
    """
    Clean up the activities a departing member created, without committing.
    Prepaid activities (and their charges) are deleted; the rest are kept
    and attributed to the removed-user placeholder unless delete_all is set.
    With keep_shared_prepaid, prepaid activities that charged other members
    are kept too, so their charges stay in the balance history.
    """
    activities = db.query(Activity).filter(
        Activity.trip_id == trip_id,
        Activity.created_by == user_id
    ).all()

    deleted, reattributed = [], []
    for activity in activities:
        if activity.payment_type == ActivityPaymentType.PREPAID:
            drop = not (keep_shared_prepaid and _charges_others(activity, user_id))
        else:
            drop = delete_all
        if drop:
            deleted.append(activity.id)
            db.delete(activity)
        else:
            activity.created_by = None
            label = settings.REMOVED_USER_LABEL
            activity.description = f"{activity.description} ({label})" if activity.description else label
            reattributed.append(activity.id)
    return {"deleted": deleted, "reattributed": reattributed}
