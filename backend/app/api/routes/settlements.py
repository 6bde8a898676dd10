"""
Settlement routes: optimized plan, settlement lifecycle and payment options.
"""
from dataclasses import asdict
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.db.session import get_db
from app.models.user import User
from app.models.trip import PaymentStatus
from app.schemas.expense import UserBalanceResponse
from app.schemas.settlement import (
    SettlementCreate, SettlementResponse, SettlementOption,
    OptimizedTransaction, SettlementStats, OptimizedSettlementResponse, UserRecommendationsResponse
)
from app.api.dependencies import get_current_user
from app.api.routes.trips import check_trip_access
from app.services import settlement_service
from app.services.balance_service import compute_balances
from app.services.payment_links import get_settlement_options
from app.services.settlement_optimizer import optimize_settlements, get_user_recommendations
from app.services.trip_service import find_member

router = APIRouter(tags=["settlements"])


@router.get("/settlements/pending", response_model=List[SettlementResponse])
async def list_pending_settlements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Settlements waiting for the current user to confirm receipt."""
    return settlement_service.list_pending_for_payee(current_user.id, db)


@router.get("/settlements/{trip_id}/optimized", response_model=OptimizedSettlementResponse)
async def get_optimized_settlements(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Shortest list of payments that settles everyone in the trip."""
    check_trip_access(trip_id, current_user.id, db)
    balances = compute_balances(trip_id, db)
    result = optimize_settlements(balances)
    return OptimizedSettlementResponse(
        transactions=[OptimizedTransaction(**asdict(t)) for t in result.transactions],
        stats=SettlementStats(**asdict(result.stats)),
        is_valid=result.is_valid,
        warning=result.warning,
        original_balances=[UserBalanceResponse(**asdict(b)) for b in balances.values()]
    )


@router.get(
    "/settlements/{trip_id}/user-recommendations/{user_id}",
    response_model=UserRecommendationsResponse
)
async def get_recommendations(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Payments a single user should make."""
    check_trip_access(trip_id, current_user.id, db)
    recommendations = get_user_recommendations(compute_balances(trip_id, db), user_id)
    return UserRecommendationsResponse(
        recommendations=[OptimizedTransaction(**asdict(t)) for t in recommendations]
    )


@router.post(
    "/trips/{trip_id}/settlements/initiate",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED
)
async def initiate_settlement(
    trip_id: int,
    settlement_data: SettlementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a payment to another member as sent. It stays pending until confirmed."""
    check_trip_access(trip_id, current_user.id, db)
    return settlement_service.initiate_settlement(
        trip_id,
        current_user.id,
        settlement_data.payee_id,
        settlement_data.amount,
        settlement_data.payment_method,
        db,
        notes=settlement_data.notes
    )


@router.get("/trips/{trip_id}/settlements", response_model=List[SettlementResponse])
async def list_settlements(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    check_trip_access(trip_id, current_user.id, db)
    return settlement_service.list_trip_settlements(trip_id, db)


@router.post("/settlements/{settlement_id}/confirm", response_model=SettlementResponse)
async def confirm_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Payee (or organizer) confirms the money arrived."""
    return settlement_service.confirm_settlement(settlement_id, current_user.id, db)


@router.post("/settlements/{settlement_id}/reject", response_model=SettlementResponse)
async def reject_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Payee (or organizer) reports the money never arrived."""
    return settlement_service.reject_settlement(settlement_id, current_user.id, db)


@router.get("/trips/{trip_id}/settlement-options/{payee_id}", response_model=List[SettlementOption])
async def get_payment_options(
    trip_id: int,
    payee_id: int,
    amount: Optional[Decimal] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Ways to pay the payee. Without an explicit amount we use what the
    optimized plan says the current user owes them, or the down payment
    when paying the organizer.
    """
    trip = check_trip_access(trip_id, current_user.id, db)
    payee = db.query(User).filter(User.id == payee_id).first()
    if not payee or not find_member(trip_id, payee_id, db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payee is not a member of this trip"
        )

    if amount is None:
        for transaction in get_user_recommendations(compute_balances(trip_id, db), current_user.id):
            if transaction.to_user_id == payee_id:
                amount = transaction.amount
                break

    if amount is None and payee_id == trip.organizer_id and trip.requires_down_payment:
        member = find_member(trip_id, current_user.id, db)
        if member.payment_status == PaymentStatus.PENDING:
            amount = trip.down_payment_amount

    if amount is None or amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing is owed to this user; pass an amount explicitly"
        )

    return get_settlement_options(payee, amount, current_user.display_name, trip.name, trip.currency)
