"""
Tests for the settlement lifecycle.
"""
from decimal import Decimal
import pytest
from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.models.settlement import SettlementStatus
from app.models.trip import PaymentMethod
from app.services.balance_service import compute_balances
from app.services.expense_service import create_expense
from app.services.settlement_service import (
    initiate_settlement, confirm_settlement, reject_settlement,
    list_trip_settlements, list_pending_for_payee
)

D = Decimal


@pytest.fixture
def dinner(db, trio):
    """Alice paid 30 for three: Bob and Carol owe her 10 each."""
    trip, alice, bob, carol = trio
    create_expense(trip.id, alice.id, "Dinner", D("30.00"), alice.id, db, split_with=[alice.id, bob.id, carol.id])
    return trio


def test_initiate_creates_pending_without_touching_balances(db, dinner):
    trip, alice, bob, carol = dinner
    settlement = initiate_settlement(trip.id, bob.id, alice.id, D("10.00"), PaymentMethod.CASH, db)

    assert settlement.status == SettlementStatus.PENDING
    assert settlement.amount == D("10.00")
    assert settlement.payment_link is None
    assert compute_balances(trip.id, db)[bob.id].net_balance == D("-10.00")
    assert [s.id for s in list_pending_for_payee(alice.id, db)] == [settlement.id]


def test_initiate_builds_payment_link(db, dinner):
    trip, alice, bob, carol = dinner
    settlement = initiate_settlement(trip.id, carol.id, bob.id, D("5.00"), PaymentMethod.VENMO, db)
    assert settlement.payment_link.startswith("https://venmo.com/bob-v?txn=pay&amount=5.00")


@pytest.mark.parametrize("amount", [D("0"), D("-3.00"), float("nan"), None])
def test_initiate_rejects_bad_amount(db, dinner, amount):
    trip, alice, bob, carol = dinner
    with pytest.raises(ValidationError):
        initiate_settlement(trip.id, bob.id, alice.id, amount, PaymentMethod.CASH, db)


def test_initiate_rejects_self_payment(db, dinner):
    trip, alice, bob, carol = dinner
    with pytest.raises(ValidationError):
        initiate_settlement(trip.id, bob.id, bob.id, D("10.00"), PaymentMethod.CASH, db)


def test_initiate_requires_payment_method(db, dinner):
    trip, alice, bob, carol = dinner
    with pytest.raises(ValidationError):
        initiate_settlement(trip.id, bob.id, alice.id, D("10.00"), PaymentMethod.NONE, db)
    assert list_trip_settlements(trip.id, db) == []


def test_initiate_requires_trip_and_members(db, dinner, make_user):
    trip, alice, bob, carol = dinner
    outsider = make_user("dave")
    with pytest.raises(NotFoundError):
        initiate_settlement(9999, bob.id, alice.id, D("10.00"), PaymentMethod.CASH, db)
    with pytest.raises(NotFoundError):
        initiate_settlement(trip.id, outsider.id, alice.id, D("10.00"), PaymentMethod.CASH, db)


def test_confirmation_zeroes_balances(db, dinner):
    trip, alice, bob, carol = dinner
    for payer in (bob, carol):
        settlement = initiate_settlement(trip.id, payer.id, alice.id, D("10.00"), PaymentMethod.CASH, db)
        confirmed = confirm_settlement(settlement.id, alice.id, db)
        assert confirmed.status == SettlementStatus.CONFIRMED
        assert confirmed.confirmed_by == alice.id
        assert confirmed.confirmed_at is not None

    balances = compute_balances(trip.id, db)
    assert all(b.net_balance == D("0.00") for b in balances.values())


def test_double_confirm_is_rejected_and_credited_once(db, dinner):
    trip, alice, bob, carol = dinner
    settlement = initiate_settlement(trip.id, bob.id, alice.id, D("10.00"), PaymentMethod.CASH, db)
    confirm_settlement(settlement.id, alice.id, db)

    with pytest.raises(ConflictError) as exc_info:
        confirm_settlement(settlement.id, alice.id, db)
    assert "already confirmed" in exc_info.value.message

    balances = compute_balances(trip.id, db)
    assert balances[bob.id].net_balance == D("0.00")
    assert balances[alice.id].net_balance == D("10.00")


def test_reject_leaves_balances_and_is_terminal(db, dinner):
    trip, alice, bob, carol = dinner
    settlement = initiate_settlement(trip.id, bob.id, alice.id, D("10.00"), PaymentMethod.CASH, db)

    rejected = reject_settlement(settlement.id, alice.id, db)
    assert rejected.status == SettlementStatus.REJECTED
    assert rejected.rejected_by == alice.id
    assert compute_balances(trip.id, db)[bob.id].net_balance == D("-10.00")

    with pytest.raises(ConflictError):
        confirm_settlement(settlement.id, alice.id, db)
    assert list_pending_for_payee(alice.id, db) == []


def test_only_payee_or_manager_can_resolve(db, dinner):
    trip, alice, bob, carol = dinner
    settlement = initiate_settlement(trip.id, bob.id, carol.id, D("5.00"), PaymentMethod.CASH, db)

    with pytest.raises(PermissionDeniedError):
        confirm_settlement(settlement.id, bob.id, db)

    # Alice organizes the trip, so she may resolve it on Carol's behalf
    assert confirm_settlement(settlement.id, alice.id, db).status == SettlementStatus.CONFIRMED


def test_unknown_settlement(db, dinner):
    trip, alice, bob, carol = dinner
    with pytest.raises(NotFoundError):
        confirm_settlement(424242, alice.id, db)


def test_list_trip_settlements(db, dinner):
    trip, alice, bob, carol = dinner
    first = initiate_settlement(trip.id, bob.id, alice.id, D("4.00"), PaymentMethod.CASH, db)
    second = initiate_settlement(trip.id, carol.id, alice.id, D("6.00"), PaymentMethod.CASH, db)
    assert {s.id for s in list_trip_settlements(trip.id, db)} == {first.id, second.id}
