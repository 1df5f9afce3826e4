# Task CRUD and history
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from timebox.core.database import get_db
from timebox.core.security import get_current_user
from timebox.models.user import User
from timebox.schemas.task import TaskCreate, TaskUpdate, TaskResponse, HistoryEntry
from timebox.services.task_service import TaskService

router = APIRouter()


@router.get("", response_model=List[TaskResponse])
def get_tasks(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all tasks for current user"""
    return TaskService(db).get_user_tasks(user.id)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new task"""
    return TaskService(db).create_task(user.id, task_data)


@router.get("/history", response_model=List[HistoryEntry])
def get_history(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Minutes worked per day, for the activity graph"""
    history = TaskService(db).get_history(user.id)
    return [HistoryEntry(date=day, minutes_worked=minutes) for day, minutes in history]


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    task_data: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a task; toggling completed rebuilds or clears its history"""
    return TaskService(db).update_task(task_id, user.id, task_data)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a task"""
    TaskService(db).delete_task(task_id, user.id)
    return {"success": True}
