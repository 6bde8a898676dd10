"""
Tests for the settlement plan optimizer. No database needed.
"""
import logging
from decimal import Decimal
import pytest
from app.core.exceptions import ValidationError
from app.services.balance_service import UserBalance
from app.services.settlement_optimizer import (
    optimize_settlements, minimize_transfers, validate_settlement_plan,
    get_settlement_stats, get_user_recommendations
)

D = Decimal


def _replay(balances, transactions):
    remaining = {uid: D(str(bal)) for uid, bal in balances.items()}
    for t in transactions:
        remaining[t.from_user_id] += t.amount
        remaining[t.to_user_id] -= t.amount
    return remaining


def test_triangle():
    """A +20, B -10, C -10: both debtors pay A."""
    result = optimize_settlements({1: D("20.00"), 2: D("-10.00"), 3: D("-10.00")})

    pairs = [(t.from_user_id, t.to_user_id, t.amount) for t in result.transactions]
    assert pairs == [(2, 1, D("10.00")), (3, 1, D("10.00"))]
    assert result.is_valid
    assert result.warning is None
    assert result.stats.total_transactions == 2
    assert result.stats.total_amount == D("20.00")
    assert result.stats.users_involved == 3
    assert result.stats.average_transaction_amount == D("10.00")


def test_all_settled_returns_nothing():
    result = optimize_settlements({1: D("0.00"), 2: D("0.004"), 3: D("-0.004")})
    assert result.transactions == []
    assert result.stats.total_transactions == 0
    assert result.stats.total_amount == D("0.00")
    assert result.is_valid


def test_empty_input():
    result = optimize_settlements({})
    assert result.transactions == []
    assert result.is_valid


def test_largest_debtor_pays_largest_creditor_first():
    balances = {1: D("50.00"), 2: D("10.00"), 3: D("-45.00"), 4: D("-15.00")}
    transactions = minimize_transfers(balances)

    first = transactions[0]
    assert (first.from_user_id, first.to_user_id, first.amount) == (3, 1, D("45.00"))
    remaining = _replay(balances, transactions)
    assert all(abs(v) <= D("0.01") for v in remaining.values())


def test_ties_go_to_lower_user_id():
    transactions = minimize_transfers({7: D("-5.00"), 3: D("-5.00"), 9: D("5.00"), 4: D("5.00")})
    assert (transactions[0].from_user_id, transactions[0].to_user_id) == (3, 4)
    assert (transactions[1].from_user_id, transactions[1].to_user_id) == (7, 9)


@pytest.mark.parametrize("balances", [
    {1: D("33.34"), 2: D("-16.67"), 3: D("-16.67")},
    {1: D("100.00"), 2: D("-25.00"), 3: D("-25.00"), 4: D("-25.00"), 5: D("-25.00")},
    {1: D("12.50"), 2: D("7.50"), 3: D("-3.00"), 4: D("-9.00"), 5: D("-8.00")},
    {1: D("-60.00"), 2: D("20.00"), 3: D("20.00"), 4: D("20.00")},
])
def test_plan_zeroes_balances_within_bound(balances):
    result = optimize_settlements(balances)
    nonzero = sum(1 for v in balances.values() if abs(v) > D("0.01"))

    assert result.is_valid
    assert len(result.transactions) <= max(0, nonzero - 1)
    assert all(t.amount > 0 for t in result.transactions)
    assert all(t.from_user_id != t.to_user_id for t in result.transactions)
    assert all(abs(v) <= D("0.01") for v in _replay(balances, result.transactions).values())


def test_accepts_user_balances_and_uses_names():
    balances = {
        1: UserBalance(1, "Alice", D("30"), D("10"), D("0"), D("0"), D("20.00")),
        2: UserBalance(2, "Bob", D("0"), D("20"), D("0"), D("0"), D("-20.00")),
    }
    result = optimize_settlements(balances)
    assert result.transactions[0].from_user_name == "Bob"
    assert result.transactions[0].to_user_name == "Alice"


def test_accepts_plain_numbers():
    result = optimize_settlements({1: 10, 2: -10.0, 3: "0"})
    assert [(t.from_user_id, t.amount) for t in result.transactions] == [(2, D("10.00"))]


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), None, "ten", D("NaN")])
def test_malformed_balance_raises(bad):
    with pytest.raises(ValidationError):
        optimize_settlements({1: D("10.00"), 2: bad})


def test_drift_marks_plan_invalid(caplog):
    """Balances that do not sum to zero cannot be fully settled."""
    with caplog.at_level(logging.WARNING, logger="app.services.settlement_optimizer"):
        result = optimize_settlements({1: D("10.00"), 2: D("-5.00")})

    assert not result.is_valid
    assert "user 1" in result.warning
    assert "+5.00" in result.warning
    assert any("does not zero" in record.getMessage() for record in caplog.records)


def test_validate_settlement_plan_accepts_cent_residue():
    transactions = minimize_transfers({1: D("10.00"), 2: D("-10.00")})
    is_valid, message = validate_settlement_plan({1: D("10.01"), 2: D("-10.00")}, transactions)
    assert is_valid
    assert message is None


def test_stats_for_empty_plan():
    stats = get_settlement_stats([])
    assert stats.total_transactions == 0
    assert stats.users_involved == 0
    assert stats.average_transaction_amount == D("0.00")


def test_user_recommendations_only_outgoing():
    balances = {1: D("20.00"), 2: D("-10.00"), 3: D("-10.00")}
    assert [t.to_user_id for t in get_user_recommendations(balances, 2)] == [1]
    assert get_user_recommendations(balances, 1) == []
    assert get_user_recommendations(balances, 42) == []
