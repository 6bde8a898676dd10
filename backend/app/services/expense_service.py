"""
Expense service for expense-related business logic.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence
from sqlalchemy.orm import Session, selectinload
from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.core.utils import ZERO, SETTLEMENT_EPSILON, to_money, split_evenly
from app.models.activity import Activity
from app.models.expense import Expense, ExpenseShare
from app.models.trip import Trip
from app.services.trip_service import get_trip, get_confirmed_member_ids, find_member

logger = logging.getLogger(__name__)


def build_shares(
    amount: Decimal,
    split_with: Optional[Sequence[int]] = None,
    shares: Optional[Mapping[int, Decimal]] = None
) -> Dict[int, Decimal]:
    """
    Resolve per-user shares for an expense.
    Explicit shares must add up to the amount; otherwise split_with is split evenly.
    """
    if shares:
        resolved = {int(uid): to_money(value, field=f"share of user {uid}") for uid, value in shares.items()}
        if any(value <= 0 for value in resolved.values()):
            raise ValidationError("Every share must be greater than zero")
        total = sum(resolved.values(), ZERO)
        if abs(total - amount) >= SETTLEMENT_EPSILON:
            raise ValidationError(f"Shares add up to {total}, expected {amount}")
        return resolved
    if split_with:
        return split_evenly(amount, split_with)
    raise ValidationError("Provide split_with or shares for the expense")


def add_expense(
    trip: Trip,
    title: str,
    amount: Decimal,
    paid_by: int,
    shares: Mapping[int, Decimal],
    db: Session,
    created_by: Optional[int] = None,
    category: str = "other",
    description: Optional[str] = None,
    activity: Optional[Activity] = None
) -> Expense:
    """Stage an expense and its shares in the session without committing."""
    expense = Expense(
        trip=trip,
        title=title,
        amount=amount,
        currency=trip.currency,
        category=category,
        description=description,
        paid_by=paid_by,
        created_by=created_by,
        activity=activity
    )
    for user_id in sorted(shares):
        expense.shares.append(ExpenseShare(user_id=user_id, amount=shares[user_id]))
    db.add(expense)
    return expense


def create_expense(
    trip_id: int,
    creator_id: int,
    title: str,
    amount,
    paid_by: int,
    db: Session,
    split_with: Optional[Sequence[int]] = None,
    shares: Optional[Mapping[int, Decimal]] = None,
    category: str = "other",
    description: Optional[str] = None
) -> Expense:
    """
    Create a manual expense.
    The payer and everyone sharing it must have a confirmed RSVP.
    """
    trip = get_trip(trip_id, db)
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Expense amount must be greater than zero")

    confirmed = set(get_confirmed_member_ids(trip_id, db))
    if paid_by not in confirmed:
        raise ValidationError("Expense payer must have confirmed RSVP status")

    resolved = build_shares(amount, split_with, shares)
    unconfirmed = sorted(uid for uid in resolved if uid not in confirmed)
    if unconfirmed:
        raise ValidationError(f"Users {unconfirmed} do not have confirmed RSVP status")

    expense = add_expense(
        trip, title, amount, paid_by, resolved, db,
        created_by=creator_id, category=category, description=description
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(expense)
    logger.info(f"Expense {expense.id} created in trip {trip_id}: {amount} paid by {paid_by}")
    return expense


def list_trip_expenses(trip_id: int, db: Session) -> List[Expense]:
    get_trip(trip_id, db)
    return db.query(Expense).options(
        selectinload(Expense.shares)
    ).filter(Expense.trip_id == trip_id).order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def get_expense(expense_id: int, db: Session) -> Expense:
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def delete_expense(expense_id: int, actor_id: int, db: Session) -> None:
    """
    Manual expenses can only be deleted by their creator; prepaid activity
    charges only by the trip organizer or an admin.
    """
    expense = get_expense(expense_id, db)
    if expense.is_activity_linked:
        member = find_member(expense.trip_id, actor_id, db)
        if not member or not member.can_manage:
            raise PermissionDeniedError("Only the trip organizer or an admin can delete activity expenses")
    elif expense.created_by != actor_id:
        raise PermissionDeniedError("Only the creator can delete this expense")

    try:
        db.delete(expense)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Expense {expense_id} deleted by user {actor_id}")
