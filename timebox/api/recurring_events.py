# Daily recurring event templates
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from timebox.core.database import get_db
from timebox.core.security import get_current_user
from timebox.models.user import User
from timebox.schemas.reminder import RecurringEventCreate, RecurringEventUpdate, RecurringEventResponse
from timebox.services.reminder_service import RecurringEventService

router = APIRouter()


@router.get("", response_model=List[RecurringEventResponse])
def get_recurring_events(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get recurring events ordered by time of day"""
    return RecurringEventService(db).get_recurring_events(user.id)


@router.post("", response_model=RecurringEventResponse, status_code=status.HTTP_201_CREATED)
def create_recurring_event(
    data: RecurringEventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a recurring event"""
    return RecurringEventService(db).create_recurring_event(user.id, data)


@router.put("/{event_id}", response_model=RecurringEventResponse)
def update_recurring_event(
    event_id: int,
    data: RecurringEventUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a recurring event"""
    return RecurringEventService(db).update_recurring_event(event_id, user.id, data)


@router.delete("/{event_id}")
def delete_recurring_event(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a recurring event"""
    RecurringEventService(db).delete_recurring_event(event_id, user.id)
    return {"success": True}
