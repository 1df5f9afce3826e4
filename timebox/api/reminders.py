# Reminders
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from timebox.core.database import get_db
from timebox.core.security import get_current_user
from timebox.models.user import User
from timebox.schemas.reminder import ReminderCreate, ReminderUpdate, ReminderResponse
from timebox.services.reminder_service import ReminderService

router = APIRouter()


@router.get("", response_model=List[ReminderResponse])
def get_reminders(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get reminders, optionally only those overlapping a date range"""
    return ReminderService(db).get_reminders(user.id, start_date, end_date)


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
def create_reminder(
    data: ReminderCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a reminder"""
    return ReminderService(db).create_reminder(user.id, data)


@router.get("/{reminder_id}", response_model=ReminderResponse)
def get_reminder(
    reminder_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ReminderService(db).get_reminder(reminder_id, user.id)


@router.patch("/{reminder_id}", response_model=ReminderResponse)
def update_reminder(
    reminder_id: int,
    data: ReminderUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ReminderService(db).update_reminder(reminder_id, user.id, data)


@router.delete("/{reminder_id}")
def delete_reminder(
    reminder_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ReminderService(db).delete_reminder(reminder_id, user.id)
    return {"success": True}
