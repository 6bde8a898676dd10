"""
Tests for the RSVP / payment state machines.
"""
from types import SimpleNamespace
import pytest
from app.core.exceptions import ConflictError
from app.models.trip import RSVPStatus, PaymentStatus
from app.services.member_state import (
    COMPATIBLE_STATES, RSVP_TRANSITIONS, PAYMENT_TRANSITIONS,
    can_transition_rsvp, can_transition_payment, is_compatible,
    transition_rsvp, transition_payment, ensure_compatible, plan_transition
)


def _member(rsvp, payment):
    return SimpleNamespace(rsvp_status=rsvp, payment_status=payment)


def test_every_state_has_rules():
    assert set(RSVP_TRANSITIONS) == set(RSVPStatus)
    assert set(PAYMENT_TRANSITIONS) == set(PaymentStatus)
    assert set(COMPATIBLE_STATES) == set(RSVPStatus)


def test_confirmed_states_are_terminal():
    assert not RSVP_TRANSITIONS[RSVPStatus.CONFIRMED]
    assert not PAYMENT_TRANSITIONS[PaymentStatus.CONFIRMED]


@pytest.mark.parametrize("current,target,allowed", [
    (RSVPStatus.PENDING, RSVPStatus.AWAITING_PAYMENT, True),
    (RSVPStatus.PENDING, RSVPStatus.CONFIRMED, True),
    (RSVPStatus.AWAITING_PAYMENT, RSVPStatus.DECLINED, True),
    (RSVPStatus.DECLINED, RSVPStatus.PENDING, True),
    (RSVPStatus.DECLINED, RSVPStatus.CONFIRMED, False),
    (RSVPStatus.CONFIRMED, RSVPStatus.DECLINED, False),
    (RSVPStatus.AWAITING_PAYMENT, RSVPStatus.PENDING, False),
])
def test_rsvp_transitions(current, target, allowed):
    assert can_transition_rsvp(current, target) is allowed


@pytest.mark.parametrize("current,target,allowed", [
    (PaymentStatus.NONE, PaymentStatus.PENDING, True),
    (PaymentStatus.PENDING, PaymentStatus.SUBMITTED, True),
    (PaymentStatus.SUBMITTED, PaymentStatus.CONFIRMED, True),
    (PaymentStatus.SUBMITTED, PaymentStatus.REJECTED, True),
    (PaymentStatus.REJECTED, PaymentStatus.NONE, True),
    (PaymentStatus.CONFIRMED, PaymentStatus.REJECTED, False),
    (PaymentStatus.REJECTED, PaymentStatus.CONFIRMED, False),
    (PaymentStatus.NONE, PaymentStatus.CONFIRMED, False),
])
def test_payment_transitions(current, target, allowed):
    assert can_transition_payment(current, target) is allowed


def test_illegal_moves_raise_conflict():
    with pytest.raises(ConflictError):
        transition_rsvp(RSVPStatus.CONFIRMED, RSVPStatus.PENDING)
    with pytest.raises(ConflictError):
        transition_payment(PaymentStatus.CONFIRMED, PaymentStatus.NONE)
    assert transition_payment(PaymentStatus.SUBMITTED, PaymentStatus.CONFIRMED) == PaymentStatus.CONFIRMED


def test_compatibility_table():
    assert is_compatible(RSVPStatus.AWAITING_PAYMENT, PaymentStatus.SUBMITTED)
    assert is_compatible(RSVPStatus.DECLINED, PaymentStatus.REJECTED)
    assert not is_compatible(RSVPStatus.CONFIRMED, PaymentStatus.SUBMITTED)
    assert not is_compatible(RSVPStatus.PENDING, PaymentStatus.PENDING)
    with pytest.raises(ConflictError):
        ensure_compatible(RSVPStatus.CONFIRMED, PaymentStatus.REJECTED)


def test_plan_transition_moves_both_sides():
    member = _member(RSVPStatus.AWAITING_PAYMENT, PaymentStatus.SUBMITTED)
    assert plan_transition(member, RSVPStatus.CONFIRMED, PaymentStatus.CONFIRMED) == (
        RSVPStatus.CONFIRMED, PaymentStatus.CONFIRMED
    )
    # Planning does not write
    assert member.rsvp_status == RSVPStatus.AWAITING_PAYMENT


def test_plan_transition_keeps_omitted_side():
    member = _member(RSVPStatus.PENDING, PaymentStatus.NONE)
    assert plan_transition(member, RSVPStatus.CONFIRMED) == (RSVPStatus.CONFIRMED, PaymentStatus.NONE)


def test_plan_transition_rejects_incompatible_result():
    member = _member(RSVPStatus.AWAITING_PAYMENT, PaymentStatus.SUBMITTED)
    # Declining while a payment is under review would leave declined/submitted
    with pytest.raises(ConflictError):
        plan_transition(member, RSVPStatus.DECLINED)
