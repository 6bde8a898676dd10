"""
Activity routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db.session import get_db
from app.models.user import User
from app.schemas.activity import ActivityCreate, ActivityResponse, OwnershipTransfer
from app.api.dependencies import get_current_user
from app.api.routes.trips import check_trip_access
from app.services import activity_service

router = APIRouter(tags=["activities"])


@router.get("/trips/{trip_id}/activities", response_model=List[ActivityResponse])
async def list_activities(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    check_trip_access(trip_id, current_user.id, db)
    return activity_service.list_trip_activities(trip_id, db)


@router.post("/trips/{trip_id}/activities", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    trip_id: int,
    activity_data: ActivityCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create an activity. Prepaid activities charge the listed participants."""
    check_trip_access(trip_id, current_user.id, db)
    return activity_service.create_activity(
        trip_id,
        current_user.id,
        activity_data.name,
        db,
        payment_type=activity_data.payment_type,
        cost=activity_data.cost,
        participant_ids=activity_data.participant_ids,
        description=activity_data.description,
        date=activity_data.date
    )


@router.get("/activities/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    activity = activity_service.get_activity(activity_id, db)
    check_trip_access(activity.trip_id, current_user.id, db)
    return activity


@router.delete("/activities/{activity_id}")
async def delete_activity(
    activity_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an activity together with its prepaid charge."""
    activity = activity_service.get_activity(activity_id, db)
    check_trip_access(activity.trip_id, current_user.id, db)
    activity_service.delete_activity(activity_id, current_user.id, db)
    return {"message": "Activity deleted successfully"}


@router.put("/activities/{activity_id}/transfer-ownership", response_model=ActivityResponse)
async def transfer_ownership(
    activity_id: int,
    transfer: OwnershipTransfer,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Reassign an activity (and its prepaid charge) to another member."""
    activity = activity_service.get_activity(activity_id, db)
    check_trip_access(activity.trip_id, current_user.id, db)
    return activity_service.transfer_ownership(activity_id, current_user.id, transfer.new_owner_id, db)
