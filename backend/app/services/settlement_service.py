"""
Settlement lifecycle: initiate, confirm, reject.

pending -> confirmed | rejected, both terminal. Terminal transitions are a
single guarded UPDATE (status must still be pending), so two concurrent
confirmations cannot both land and a balance is never credited twice.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.core.utils import to_money
from app.models.settlement import Settlement, SettlementStatus
from app.models.trip import Trip, TripMember, PaymentMethod
from app.models.user import User
from app.services.balance_service import compute_balances
from app.services.payment_links import payment_link_for

logger = logging.getLogger(__name__)


def get_settlement(settlement_id: int, db: Session) -> Settlement:
    settlement = db.query(Settlement).filter(Settlement.id == settlement_id).first()
    if not settlement:
        raise NotFoundError(f"Settlement {settlement_id} not found")
    return settlement


def initiate_settlement(
    trip_id: int,
    payer_id: int,
    payee_id: int,
    amount,
    payment_method: PaymentMethod,
    db: Session,
    notes: Optional[str] = None
) -> Settlement:
    """
    Record that the payer has sent money to the payee.
    The settlement starts pending and does not affect balances until the
    payee (or an organizer) confirms it.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Settlement amount must be greater than zero")
    if payer_id == payee_id:
        raise ValidationError("Payer and payee must be different users")
    if payment_method == PaymentMethod.NONE:
        raise ValidationError("Choose venmo, paypal or cash")

    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")

    balances = compute_balances(trip_id, db)
    if payer_id not in balances:
        raise NotFoundError(f"User {payer_id} is not part of this trip")
    if payee_id not in balances:
        raise NotFoundError(f"Payee {payee_id} is not part of this trip")

    payee = db.query(User).filter(User.id == payee_id).first()
    if not payee:
        raise NotFoundError(f"Payee {payee_id} not found")

    payment_link = payment_link_for(
        payment_method, payee, amount, balances[payer_id].name, trip.name, trip.currency
    )

    settlement = Settlement(
        trip=trip,
        payer_id=payer_id,
        payee_id=payee_id,
        amount=amount,
        currency=trip.currency,
        payment_method=payment_method,
        payment_link=payment_link,
        status=SettlementStatus.PENDING,
        notes=notes,
        initiated_at=datetime.utcnow()
    )
    try:
        db.add(settlement)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(settlement)

    logger.info(
        f"Settlement {settlement.id} created: trip={trip_id} payer={payer_id} "
        f"payee={payee_id} amount={amount} method={payment_method.value}"
    )
    return settlement


def ensure_can_resolve(settlement: Settlement, actor_id: int, db: Session) -> None:
    """Only the payee or a trip organizer/admin may confirm or reject."""
    if settlement.payee_id == actor_id:
        return
    member = db.query(TripMember).filter(
        TripMember.trip_id == settlement.trip_id,
        TripMember.user_id == actor_id
    ).first()
    if member and member.can_manage:
        return
    raise PermissionDeniedError("Only the payee or a trip organizer can resolve this settlement")


def _resolve(settlement_id: int, actor_id: int, target: SettlementStatus, db: Session) -> Settlement:
    settlement = get_settlement(settlement_id, db)
    ensure_can_resolve(settlement, actor_id, db)

    now = datetime.utcnow()
    values = {Settlement.status: target, Settlement.updated_at: now}
    if target == SettlementStatus.CONFIRMED:
        values.update({Settlement.confirmed_at: now, Settlement.confirmed_by: actor_id})
    else:
        values.update({Settlement.rejected_at: now, Settlement.rejected_by: actor_id})

    try:
        updated = db.query(Settlement).filter(
            Settlement.id == settlement_id,
            Settlement.status == SettlementStatus.PENDING
        ).update(values, synchronize_session=False)
        if updated == 0:
            db.rollback()
            db.refresh(settlement)
            logger.warning(
                f"Refused to mark settlement {settlement_id} {target.value}: "
                f"already {settlement.status.value}"
            )
            raise ConflictError(f"Settlement already {settlement.status.value}")
        db.commit()
    except ConflictError:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(settlement)
    logger.info(f"Settlement {settlement_id} {target.value} by user {actor_id}")
    return settlement


def confirm_settlement(settlement_id: int, actor_id: int, db: Session) -> Settlement:
    """pending -> confirmed. The amount counts toward balances from now on."""
    return _resolve(settlement_id, actor_id, SettlementStatus.CONFIRMED, db)


def reject_settlement(settlement_id: int, actor_id: int, db: Session) -> Settlement:
    """pending -> rejected. Balances are untouched."""
    return _resolve(settlement_id, actor_id, SettlementStatus.REJECTED, db)


def list_trip_settlements(trip_id: int, db: Session) -> List[Settlement]:
    return db.query(Settlement).filter(
        Settlement.trip_id == trip_id
    ).order_by(Settlement.initiated_at.desc(), Settlement.id.desc()).all()


def list_pending_for_payee(user_id: int, db: Session) -> List[Settlement]:
    """Settlements waiting for this user to confirm receipt."""
    return db.query(Settlement).filter(
        Settlement.payee_id == user_id,
        Settlement.status == SettlementStatus.PENDING
    ).order_by(Settlement.initiated_at.desc(), Settlement.id.desc()).all()
