"""
Payment deep links for settling up outside the app.

Opening a link has no server-side effect; a settlement only exists once the
payer marks it as sent.
"""
from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote
from app.models.trip import PaymentMethod
from app.models.user import User
from app.schemas.settlement import SettlementOption


def generate_settlement_note(payer_name: str, trip_name: str) -> str:
    return f"Trip settlement: {trip_name} - from {payer_name}"


def generate_venmo_link(username: str, amount: Decimal, note: str) -> str:
    clean_username = username[1:] if username.startswith("@") else username
    return f"https://venmo.com/{clean_username}?txn=pay&amount={amount:.2f}&note={quote(note)}"


def generate_paypal_link(email: str, amount: Decimal, note: str, currency: str = "USD") -> str:
    # PayPal.me needs a username; with only an email we fall back to a payment request URL
    return (
        "https://www.paypal.com/cgi-bin/webscr?cmd=_xclick"
        f"&business={quote(email)}&amount={amount:.2f}"
        f"&item_name={quote(note)}&currency_code={currency}"
    )


def get_settlement_options(
    payee: User,
    amount: Decimal,
    payer_name: str,
    trip_name: str,
    currency: str = "USD"
) -> List[SettlementOption]:
    """Ways the payer can pay this payee. Cash is always offered."""
    note = generate_settlement_note(payer_name, trip_name)
    options: List[SettlementOption] = []

    venmo = (payee.venmo_username or "").strip()
    if venmo:
        options.append(SettlementOption(
            method=PaymentMethod.VENMO,
            display_name="Venmo",
            payment_link=generate_venmo_link(venmo, amount, note)
        ))

    paypal = (payee.paypal_email or "").strip()
    if paypal:
        options.append(SettlementOption(
            method=PaymentMethod.PAYPAL,
            display_name="PayPal",
            payment_link=generate_paypal_link(paypal, amount, note, currency)
        ))

    options.append(SettlementOption(method=PaymentMethod.CASH, display_name="Settle in Cash"))
    return options


def payment_link_for(
    method: PaymentMethod,
    payee: User,
    amount: Decimal,
    payer_name: str,
    trip_name: str,
    currency: str = "USD"
) -> Optional[str]:
    """Deep link for the chosen method, None for cash or a missing handle."""
    if method in (PaymentMethod.CASH, PaymentMethod.NONE):
        return None
    for option in get_settlement_options(payee, amount, payer_name, trip_name, currency):
        if option.method == method:
            return option.payment_link
    return None
