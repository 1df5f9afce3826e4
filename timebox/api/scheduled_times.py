# Scheduled time slots of a task
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from timebox.core.database import get_db
from timebox.core.security import get_current_user
from timebox.models.user import User
from timebox.schemas.task import ScheduledTimeCreate, ScheduledTimeUpdate, ScheduledTimeResponse
from timebox.services.sync_queue import OutlookSyncQueue, get_sync_queue
from timebox.services.task_service import TaskService

router = APIRouter()


@router.get("", response_model=List[ScheduledTimeResponse])
def get_scheduled_times(
    task_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all scheduled times for a task"""
    return TaskService(db).get_scheduled_times(task_id, user.id)


@router.post("", response_model=ScheduledTimeResponse, status_code=status.HTTP_201_CREATED)
def add_scheduled_time(
    task_id: int,
    data: ScheduledTimeCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sync_queue: OutlookSyncQueue = Depends(get_sync_queue)
):
    """Add a scheduled time slot and mirror it to Outlook"""
    return TaskService(db, sync_queue).add_scheduled_time(task_id, user.id, data)


@router.put("/{scheduled_time_id}", response_model=ScheduledTimeResponse)
def update_scheduled_time(
    task_id: int,
    scheduled_time_id: int,
    data: ScheduledTimeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sync_queue: OutlookSyncQueue = Depends(get_sync_queue)
):
    """Move or resize a scheduled time slot"""
    return TaskService(db, sync_queue).update_scheduled_time(task_id, scheduled_time_id, user.id, data)


@router.delete("/{scheduled_time_id}")
def delete_scheduled_time(
    task_id: int,
    scheduled_time_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sync_queue: OutlookSyncQueue = Depends(get_sync_queue)
):
    """Delete a scheduled time slot"""
    TaskService(db, sync_queue).delete_scheduled_time(task_id, scheduled_time_id, user.id)
    return {"success": True}
