"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db.session import get_db
from app.models.user import User
from app.schemas.expense import ExpenseCreate, ExpenseResponse, UserBalanceResponse
from app.api.dependencies import get_current_user
from app.api.routes.trips import check_trip_access
from app.services import expense_service
from app.services.balance_service import compute_balances

router = APIRouter(tags=["expenses"])


@router.get("/trips/{trip_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List expenses for a trip, newest first."""
    check_trip_access(trip_id, current_user.id, db)
    return expense_service.list_trip_expenses(trip_id, db)


@router.post("/trips/{trip_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    trip_id: int,
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a manual expense split evenly or by explicit shares."""
    check_trip_access(trip_id, current_user.id, db)
    return expense_service.create_expense(
        trip_id,
        current_user.id,
        expense_data.title,
        expense_data.amount,
        expense_data.paid_by,
        db,
        split_with=expense_data.split_with,
        shares=expense_data.shares,
        category=expense_data.category,
        description=expense_data.description
    )


@router.get("/trips/{trip_id}/expenses/balances", response_model=List[UserBalanceResponse])
async def get_balances(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Net balance of everyone involved in the trip.
    Positive means the user is owed money.
    """
    check_trip_access(trip_id, current_user.id, db)
    return list(compute_balances(trip_id, db).values())


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single expense with its shares."""
    expense = expense_service.get_expense(expense_id, db)
    check_trip_access(expense.trip_id, current_user.id, db)
    return expense


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an expense."""
    expense = expense_service.get_expense(expense_id, db)
    check_trip_access(expense.trip_id, current_user.id, db)
    expense_service.delete_expense(expense_id, current_user.id, db)
    return {"message": "Expense deleted successfully"}
