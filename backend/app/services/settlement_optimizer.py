"""
Settlement plan optimizer.

Turns net balances into a short list of payments that brings everyone back
to zero, using the greedy "largest debtor pays largest creditor" heuristic.
This is not guaranteed to be the true minimum number of payments (that
problem is NP-hard) but it never needs more than n - 1 payments for n
non-zero balances and is plenty for trip-sized groups.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple, Union
from app.core.utils import CENT, ZERO, SETTLEMENT_EPSILON, to_money
from app.services.balance_service import UserBalance

logger = logging.getLogger(__name__)

BalanceInput = Mapping[int, Union[UserBalance, Decimal, int, float, str]]


@dataclass(frozen=True)
class OptimizedTransaction:
    """A single suggested payment."""
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: Decimal


@dataclass(frozen=True)
class SettlementStats:
    total_transactions: int
    total_amount: Decimal
    users_involved: int
    average_transaction_amount: Decimal


@dataclass(frozen=True)
class OptimizationResult:
    """
    Output of optimize_settlements.
    ``is_valid`` is False when replaying the plan leaves someone more than
    the tolerance away from zero; ``warning`` then says who and by how much.
    """
    transactions: List[OptimizedTransaction]
    stats: SettlementStats
    is_valid: bool
    warning: Optional[str] = None
    balances: Dict[int, Decimal] = field(default_factory=dict)


def _within_tolerance(amount: Decimal) -> bool:
    return abs(amount) <= SETTLEMENT_EPSILON


def _coerce_balances(balances: BalanceInput) -> Tuple[Dict[int, Decimal], Dict[int, str]]:
    """Validate input and split it into amounts and display names."""
    amounts: Dict[int, Decimal] = {}
    names: Dict[int, str] = {}
    for user_id, value in balances.items():
        if isinstance(value, UserBalance):
            amounts[user_id] = to_money(value.net_balance, field=f"balance of user {user_id}")
            names[user_id] = value.name
        else:
            amounts[user_id] = to_money(value, field=f"balance of user {user_id}")
            names[user_id] = str(user_id)
    return amounts, names


def minimize_transfers(
    balances: Mapping[int, Decimal],
    names: Optional[Mapping[int, str]] = None
) -> List[OptimizedTransaction]:
    """
    Greedy matching of debtors and creditors.
    Each round the largest debtor pays the largest creditor (ties go to the
    lower user id) as much as can be settled between them, so at least one
    of the two drops out every round.
    """
    names = names or {}
    debtors = {uid: -bal for uid, bal in balances.items() if bal < -SETTLEMENT_EPSILON}
    creditors = {uid: bal for uid, bal in balances.items() if bal > SETTLEMENT_EPSILON}

    transactions: List[OptimizedTransaction] = []
    while debtors and creditors:
        debtor_id = min(debtors, key=lambda uid: (-debtors[uid], uid))
        creditor_id = min(creditors, key=lambda uid: (-creditors[uid], uid))

        amount = min(debtors[debtor_id], creditors[creditor_id]).quantize(CENT)
        transactions.append(OptimizedTransaction(
            from_user_id=debtor_id,
            from_user_name=names.get(debtor_id, str(debtor_id)),
            to_user_id=creditor_id,
            to_user_name=names.get(creditor_id, str(creditor_id)),
            amount=amount
        ))

        debtors[debtor_id] -= amount
        creditors[creditor_id] -= amount
        if _within_tolerance(debtors[debtor_id]):
            del debtors[debtor_id]
        if _within_tolerance(creditors[creditor_id]):
            del creditors[creditor_id]

    return transactions


def validate_settlement_plan(
    balances: Mapping[int, Decimal],
    transactions: List[OptimizedTransaction]
) -> Tuple[bool, Optional[str]]:
    """
    Replay the plan on a copy of the balances.
    Returns (True, None) when every user ends within the tolerance of zero,
    otherwise (False, message).
    """
    remaining = dict(balances)
    for transaction in transactions:
        remaining[transaction.from_user_id] = remaining.get(transaction.from_user_id, ZERO) + transaction.amount
        remaining[transaction.to_user_id] = remaining.get(transaction.to_user_id, ZERO) - transaction.amount

    leftovers = [
        f"user {user_id} has {amount:+.2f} left"
        for user_id, amount in sorted(remaining.items())
        if not _within_tolerance(amount)
    ]
    if leftovers:
        return False, "Settlement plan does not zero all balances: " + "; ".join(leftovers)
    return True, None


def get_settlement_stats(transactions: List[OptimizedTransaction]) -> SettlementStats:
    """Summary numbers for a settlement plan."""
    total = sum((t.amount for t in transactions), ZERO)
    users = set()
    for t in transactions:
        users.add(t.from_user_id)
        users.add(t.to_user_id)
    average = (total / len(transactions)).quantize(CENT) if transactions else ZERO
    return SettlementStats(
        total_transactions=len(transactions),
        total_amount=total.quantize(CENT),
        users_involved=len(users),
        average_transaction_amount=average
    )


def optimize_settlements(balances: BalanceInput) -> OptimizationResult:
    """
    Build the settlement plan for a set of net balances.
    Raises ValidationError on NaN, infinite or non-numeric balances.
    """
    amounts, names = _coerce_balances(balances)
    transactions = minimize_transfers(amounts, names)
    is_valid, warning = validate_settlement_plan(amounts, transactions)
    if not is_valid:
        logger.warning(warning)
    return OptimizationResult(
        transactions=transactions,
        stats=get_settlement_stats(transactions),
        is_valid=is_valid,
        warning=warning,
        balances=amounts
    )


def get_user_recommendations(balances: BalanceInput, user_id: int) -> List[OptimizedTransaction]:
    """Payments the given user should make under the optimized plan."""
    result = optimize_settlements(balances)
    return [t for t in result.transactions if t.from_user_id == user_id]
