"""
RSVP and payment state machines for trip members.

Attendance (RSVP) and down payment are tracked as two separate machines.
COMPATIBLE_STATES lists which payment states may accompany each RSVP state;
every write through this module checks the pair it produces.
"""
from typing import Dict, FrozenSet
from app.core.exceptions import ConflictError
from app.models.trip import RSVPStatus, PaymentStatus, TripMember

RSVP_TRANSITIONS: Dict[RSVPStatus, FrozenSet[RSVPStatus]] = {
    RSVPStatus.PENDING: frozenset({
        RSVPStatus.AWAITING_PAYMENT, RSVPStatus.CONFIRMED, RSVPStatus.DECLINED
    }),
    RSVPStatus.AWAITING_PAYMENT: frozenset({RSVPStatus.CONFIRMED, RSVPStatus.DECLINED}),
    RSVPStatus.CONFIRMED: frozenset(),
    RSVPStatus.DECLINED: frozenset({RSVPStatus.PENDING}),  # rejoin
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.NONE: frozenset({PaymentStatus.PENDING, PaymentStatus.SUBMITTED}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUBMITTED, PaymentStatus.NONE}),
    PaymentStatus.SUBMITTED: frozenset({PaymentStatus.CONFIRMED, PaymentStatus.REJECTED}),
    PaymentStatus.CONFIRMED: frozenset(),
    PaymentStatus.REJECTED: frozenset({PaymentStatus.NONE}),  # rejoin
}

COMPATIBLE_STATES: Dict[RSVPStatus, FrozenSet[PaymentStatus]] = {
    RSVPStatus.PENDING: frozenset({PaymentStatus.NONE}),
    RSVPStatus.AWAITING_PAYMENT: frozenset({PaymentStatus.PENDING, PaymentStatus.SUBMITTED}),
    RSVPStatus.CONFIRMED: frozenset({PaymentStatus.NONE, PaymentStatus.CONFIRMED}),
    RSVPStatus.DECLINED: frozenset({PaymentStatus.NONE, PaymentStatus.REJECTED}),
}


def can_transition_rsvp(current: RSVPStatus, target: RSVPStatus) -> bool:
    return target in RSVP_TRANSITIONS[current]


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[current]


def is_compatible(rsvp: RSVPStatus, payment: PaymentStatus) -> bool:
    return payment in COMPATIBLE_STATES[rsvp]


def transition_rsvp(current: RSVPStatus, target: RSVPStatus) -> RSVPStatus:
    """Return target if the move is legal, raise ConflictError otherwise."""
    if not can_transition_rsvp(current, target):
        raise ConflictError(f"Cannot change RSVP from {current.value} to {target.value}")
    return target


def transition_payment(current: PaymentStatus, target: PaymentStatus) -> PaymentStatus:
    """Return target if the move is legal, raise ConflictError otherwise."""
    if not can_transition_payment(current, target):
        raise ConflictError(f"Cannot change payment status from {current.value} to {target.value}")
    return target


def ensure_compatible(rsvp: RSVPStatus, payment: PaymentStatus) -> None:
    if not is_compatible(rsvp, payment):
        raise ConflictError(
            f"RSVP status {rsvp.value} cannot be combined with payment status {payment.value}"
        )


def plan_transition(member: TripMember, rsvp: RSVPStatus = None, payment: PaymentStatus = None):
    """
    Validate a combined move for a member without applying it.
    Either side may be omitted to keep its current value.
    Returns the (rsvp, payment) pair to write.
    """
    new_rsvp = member.rsvp_status if rsvp is None or rsvp == member.rsvp_status \
        else transition_rsvp(member.rsvp_status, rsvp)
    new_payment = member.payment_status if payment is None or payment == member.payment_status \
        else transition_payment(member.payment_status, payment)
    ensure_compatible(new_rsvp, new_payment)
    return new_rsvp, new_payment
