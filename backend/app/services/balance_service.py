"""
Balance aggregation for a trip.

A member's net balance is what they paid for others minus what they owe,
adjusted by confirmed settlements. Positive = is owed money, negative =
owes money. Only CONFIRMED settlements count.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional
from sqlalchemy.orm import Session, selectinload
from app.core.exceptions import NotFoundError
from app.core.utils import ZERO, to_money, normalize_balance
from app.models.expense import Expense
from app.models.settlement import Settlement, SettlementStatus
from app.models.trip import Trip, TripMember
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserBalance:
    """Net position of one user in a trip."""
    user_id: int
    name: str
    total_paid: Decimal
    total_owed: Decimal
    settlements_paid: Decimal
    settlements_received: Decimal
    net_balance: Decimal
    is_current_member: bool = True


class _Ledger:
    """Running totals for one user while aggregating."""

    def __init__(self):
        self.paid = ZERO
        self.owed = ZERO
        self.settled_out = ZERO
        self.settled_in = ZERO

    @property
    def net(self) -> Decimal:
        return (self.paid - self.owed) + self.settled_out - self.settled_in


def aggregate_balances(
    member_ids: Iterable[int],
    expenses: Iterable,
    settlements: Iterable,
    names: Optional[Mapping[int, str]] = None
) -> Dict[int, UserBalance]:
    """
    Compute net balances from an in-memory snapshot.

    ``expenses`` need ``paid_by``, ``amount`` and ``shares`` (each with
    ``user_id`` and ``amount``); ``settlements`` need ``payer_id``,
    ``payee_id``, ``amount`` and ``status``. Non-confirmed settlements are
    skipped. Former members only appear when they still have a balance.
    """
    names = names or {}
    members = set(member_ids)
    if not members:
        return {}

    ledgers: Dict[int, _Ledger] = {user_id: _Ledger() for user_id in members}

    def ledger(user_id: int) -> _Ledger:
        if user_id not in ledgers:
            ledgers[user_id] = _Ledger()
        return ledgers[user_id]

    for expense in expenses:
        ledger(expense.paid_by).paid += to_money(expense.amount)
        for share in expense.shares:
            ledger(share.user_id).owed += to_money(share.amount)

    for settlement in settlements:
        if settlement.status != SettlementStatus.CONFIRMED:
            continue
        amount = to_money(settlement.amount)
        # Paying discharges debt, receiving reduces what is still owed
        ledger(settlement.payer_id).settled_out += amount
        ledger(settlement.payee_id).settled_in += amount

    balances: Dict[int, UserBalance] = {}
    for user_id in sorted(ledgers):
        entry = ledgers[user_id]
        net = normalize_balance(entry.net)
        is_member = user_id in members
        if not is_member and net == ZERO:
            continue
        balances[user_id] = UserBalance(
            user_id=user_id,
            name=names.get(user_id, "Unknown"),
            total_paid=entry.paid,
            total_owed=entry.owed,
            settlements_paid=entry.settled_out,
            settlements_received=entry.settled_in,
            net_balance=net,
            is_current_member=is_member
        )
    return balances


def compute_balances(trip_id: int, db: Session) -> Dict[int, UserBalance]:
    """
    Load the trip's expenses, shares and confirmed settlements once and
    aggregate them. Raises NotFoundError for an unknown trip.
    """
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")

    member_ids = [
        row.user_id for row in
        db.query(TripMember.user_id).filter(TripMember.trip_id == trip_id).all()
    ]
    if not member_ids:
        return {}

    expenses = db.query(Expense).options(
        selectinload(Expense.shares)
    ).filter(Expense.trip_id == trip_id).all()

    settlements = db.query(Settlement).filter(
        Settlement.trip_id == trip_id,
        Settlement.status == SettlementStatus.CONFIRMED
    ).all()

    user_ids = set(member_ids)
    for expense in expenses:
        user_ids.add(expense.paid_by)
        user_ids.update(share.user_id for share in expense.shares)
    for settlement in settlements:
        user_ids.update((settlement.payer_id, settlement.payee_id))

    names = {
        user.id: user.display_name
        for user in db.query(User).filter(User.id.in_(user_ids)).all()
    }

    balances = aggregate_balances(member_ids, expenses, settlements, names)
    snapshot = ", ".join(f"{b.name}: {b.net_balance}" for b in balances.values())
    logger.debug(f"Balances for trip {trip_id}: {snapshot}")
    return balances


def get_user_balance(balances: Mapping[int, UserBalance], user_id: int) -> Decimal:
    """Net balance of a user, zero if they have no financial involvement."""
    balance = balances.get(user_id)
    return balance.net_balance if balance else ZERO
