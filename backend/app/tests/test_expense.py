"""
Tests for expenses, equal splits and prepaid activity charges.
"""
from decimal import Decimal
import pytest
from app.core.exceptions import PermissionDeniedError, ValidationError
from app.core.utils import split_evenly, to_money, format_money
from app.models.activity import ActivityPaymentType
from app.models.trip import RSVPStatus
from app.services.activity_service import create_activity, delete_activity, transfer_ownership
from app.services.balance_service import compute_balances
from app.services.expense_service import build_shares, create_expense, delete_expense, list_trip_expenses

D = Decimal


def test_split_evenly_gives_leftover_cents_to_lowest_ids():
    shares = split_evenly(D("100.00"), [3, 1, 2])
    assert shares == {1: D("33.34"), 2: D("33.33"), 3: D("33.33")}
    assert sum(shares.values()) == D("100.00")


def test_split_evenly_needs_participants():
    with pytest.raises(ValidationError):
        split_evenly(D("10.00"), [])


def test_to_money_and_format():
    assert to_money(0.1) == D("0.10")
    assert to_money("2.005") == D("2.01")
    assert format_money(D("-5")) == "$5.00"


def test_build_shares_must_match_amount():
    with pytest.raises(ValidationError):
        build_shares(D("30.00"), shares={1: D("10.00"), 2: D("10.00")})
    with pytest.raises(ValidationError):
        build_shares(D("10.00"), shares={1: D("12.00"), 2: D("-2.00")})
    assert build_shares(D("30.00"), shares={1: "20", 2: "10"}) == {1: D("20.00"), 2: D("10.00")}


def test_create_expense_with_uneven_split(db, trio):
    trip, alice, bob, carol = trio
    expense = create_expense(trip.id, alice.id, "Groceries", D("10.00"), alice.id, db,
                             split_with=[alice.id, bob.id, carol.id])

    amounts = {share.user_id: share.amount for share in expense.shares}
    assert amounts == {alice.id: D("3.34"), bob.id: D("3.33"), carol.id: D("3.33")}
    assert expense.currency == "USD"
    assert [e.id for e in list_trip_expenses(trip.id, db)] == [expense.id]


def test_create_expense_requires_confirmed_participants(db, trio, make_user, add_member):
    trip, alice, bob, carol = trio
    dave = make_user("dave")
    add_member(trip, dave, rsvp_status=RSVPStatus.PENDING)

    with pytest.raises(ValidationError):
        create_expense(trip.id, alice.id, "Tickets", D("20.00"), alice.id, db, split_with=[alice.id, dave.id])
    with pytest.raises(ValidationError):
        create_expense(trip.id, dave.id, "Tickets", D("20.00"), dave.id, db, split_with=[alice.id])


def test_only_creator_deletes_manual_expense(db, trio):
    trip, alice, bob, carol = trio
    expense = create_expense(trip.id, bob.id, "Snacks", D("6.00"), bob.id, db, split_with=[bob.id, carol.id])

    # Not even the organizer
    with pytest.raises(PermissionDeniedError):
        delete_expense(expense.id, alice.id, db)
    delete_expense(expense.id, bob.id, db)
    assert list_trip_expenses(trip.id, db) == []


def test_prepaid_activity_charges_participants(db, trio):
    trip, alice, bob, carol = trio
    activity = create_activity(
        trip.id, bob.id, "Wine tasting", db,
        payment_type=ActivityPaymentType.PREPAID, cost=D("45.00"),
        participant_ids=[alice.id, bob.id, carol.id]
    )

    expense = activity.expenses[0]
    assert expense.title == "Activity: Wine tasting"
    assert expense.paid_by == bob.id
    balances = compute_balances(trip.id, db)
    assert balances[bob.id].net_balance == D("30.00")
    assert balances[alice.id].net_balance == D("-15.00")


def test_prepaid_activity_needs_cost(db, trio):
    trip, alice, bob, carol = trio
    with pytest.raises(ValidationError):
        create_activity(trip.id, bob.id, "Surf", db, payment_type=ActivityPaymentType.PREPAID)


def test_activity_expense_deleted_only_by_manager(db, trio):
    trip, alice, bob, carol = trio
    activity = create_activity(
        trip.id, bob.id, "Bikes", db,
        payment_type=ActivityPaymentType.PREPAID, cost=D("20.00"), participant_ids=[bob.id, carol.id]
    )
    expense_id = activity.expenses[0].id

    with pytest.raises(PermissionDeniedError):
        delete_expense(expense_id, bob.id, db)
    delete_expense(expense_id, alice.id, db)
    assert compute_balances(trip.id, db)[carol.id].net_balance == D("0.00")


def test_delete_activity_removes_its_charge(db, trio):
    trip, alice, bob, carol = trio
    activity = create_activity(
        trip.id, carol.id, "Cooking class", db,
        payment_type=ActivityPaymentType.PREPAID, cost=D("10.00"), participant_ids=[bob.id]
    )
    with pytest.raises(PermissionDeniedError):
        delete_activity(activity.id, bob.id, db)

    delete_activity(activity.id, carol.id, db)
    assert list_trip_expenses(trip.id, db) == []


def test_transfer_ownership_moves_payer(db, trio):
    trip, alice, bob, carol = trio
    activity = create_activity(
        trip.id, bob.id, "Tram 28", db,
        payment_type=ActivityPaymentType.PREPAID, cost=D("12.00"), participant_ids=[alice.id, carol.id]
    )
    with pytest.raises(PermissionDeniedError):
        transfer_ownership(activity.id, bob.id, carol.id, db)

    activity = transfer_ownership(activity.id, alice.id, carol.id, db)
    assert activity.created_by == carol.id
    assert activity.expenses[0].paid_by == carol.id
    assert compute_balances(trip.id, db)[bob.id].net_balance == D("0.00")
