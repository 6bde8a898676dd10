"""
Money helpers shared by the balance, optimizer and expense code.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List
from app.core.config import settings
from app.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
SETTLEMENT_EPSILON = Decimal(settings.SETTLEMENT_EPSILON)


def to_money(value: Any, field: str = "amount") -> Decimal:
    """
    Convert a number to a Decimal rounded to cents.
    Floats go through str() so 0.1 stays 0.1.
    Raises ValidationError for None, NaN, infinity and non-numeric input.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required and must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def is_settled(amount: Decimal) -> bool:
    """True if the amount is within the settlement tolerance of zero."""
    return abs(amount) < SETTLEMENT_EPSILON


def normalize_balance(amount: Decimal) -> Decimal:
    """Round to cents and snap anything inside the tolerance to exactly zero."""
    rounded = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    return ZERO if is_settled(rounded) else rounded


def split_evenly(total: Decimal, user_ids: Iterable[int]) -> Dict[int, Decimal]:
    """
    Split a total into per-user shares that add up exactly.
    Leftover cents go one at a time to the lowest user ids.
    """
    ids: List[int] = sorted(set(user_ids))
    if not ids:
        raise ValidationError("At least one participant is required to split an expense")
    total = to_money(total)
    cents = int(total / CENT)
    base, remainder = divmod(cents, len(ids))
    shares = {}
    for index, user_id in enumerate(ids):
        share_cents = base + (1 if index < remainder else 0)
        shares[user_id] = (Decimal(share_cents) * CENT).quantize(CENT)
    return shares


def format_money(amount: Decimal) -> str:
    """Format an amount as a dollar string, e.g. $5.00."""
    return f"${abs(amount):,.2f}"
