"""
User profile routes.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.schemas.user import UserResponse, PaymentInfoUpdate
from app.models.user import User
from app.api.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information."""
    return current_user


@router.put("/me/payment-info", response_model=UserResponse)
async def update_payment_info(
    payment_info: PaymentInfoUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update the Venmo / PayPal handles used in settlement links. Empty clears."""
    if payment_info.venmo_username is not None:
        current_user.venmo_username = payment_info.venmo_username.strip().lstrip("@") or None
    if payment_info.paypal_email is not None:
        current_user.paypal_email = str(payment_info.paypal_email)
    db.commit()
    db.refresh(current_user)
    logger.info(f"User {current_user.id} updated payment info")
    return current_user
