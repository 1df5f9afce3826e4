import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from timebox.core.exceptions import ForbiddenError, NotFoundError
from timebox.core.timeutil import to_naive_utc, utcnow
from timebox.models.outlook import SyncAction
from timebox.models.task import Task, TaskHistory, TaskScheduledTime
from timebox.schemas.task import ScheduledTimeCreate, ScheduledTimeUpdate, TaskCreate, TaskUpdate
from timebox.services.outlook_service import SyncJob

logger = logging.getLogger(__name__)

# Columns a patch may not null out
_REQUIRED_FIELDS = {"title", "start_date", "due_date", "time_required"}


class TaskService:
    def __init__(self, db: Session, sync_queue=None):
        self.db = db
        self.sync_queue = sync_queue

    # ==================== TASKS ====================

    def get_user_tasks(self, user_id: int) -> List[Task]:
        """Tasks with their scheduled times, newest first"""
        return (
            self.db.query(Task)
            .options(selectinload(Task.scheduled_times))
            .filter(Task.user_id == user_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .all()
        )

    def get_task(self, task_id: int, user_id: int) -> Task:
        """Owned task; 404 when missing, 403 when it belongs to someone else"""
        task = self.db.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")
        if task.user_id != user_id:
            raise ForbiddenError()
        return task

    def create_task(self, user_id: int, task_data: TaskCreate) -> Task:
        task = Task(
            user_id=user_id,
            title=task_data.title,
            description=task_data.description or "",
            start_date=task_data.start_date,
            due_date=task_data.due_date,
            time_required=task_data.time_required,
            scheduled_time=to_naive_utc(task_data.scheduled_time),
            completed=False,
        )
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def update_task(self, task_id: int, user_id: int, task_data: TaskUpdate) -> Task:
        task = self.get_task(task_id, user_id)

        update_data = task_data.model_dump(exclude_unset=True)
        completed = update_data.pop("completed", None)

        for field, value in update_data.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            if field == "description":
                value = value or ""
            elif field == "scheduled_time":
                value = to_naive_utc(value)
            setattr(task, field, value)

        if completed is True:
            task.completed = True
            task.completed_at = utcnow()
            self._rebuild_history(task)
        elif completed is False:
            task.completed = False
            task.completed_at = None
            self._clear_history(task)

        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, task_id: int, user_id: int) -> None:
        """Delete a task; history and scheduled times go with it"""
        task = self.get_task(task_id, user_id)
        self.db.delete(task)
        self.db.commit()

    # ==================== HISTORY ====================

    def _clear_history(self, task: Task) -> None:
        self.db.query(TaskHistory).filter(TaskHistory.task_id == task.id).delete(synchronize_session="fetch")

    def _rebuild_history(self, task: Task) -> None:
        """One row per day worked: slot minutes by the UTC date of each start, else the whole estimate on the due date."""
        self._clear_history(task)

        minutes_by_date: Dict[date, int] = defaultdict(int)
        for slot in task.scheduled_times:
            minutes_by_date[slot.start_time.date()] += slot.duration
        if not minutes_by_date:
            minutes_by_date[task.due_date] = task.time_required

        for day in sorted(minutes_by_date):
            self.db.add(
                TaskHistory(
                    user_id=task.user_id,
                    task_id=task.id,
                    date=day,
                    completed=True,
                    minutes_worked=minutes_by_date[day],
                )
            )

    def get_history(self, user_id: int) -> List[Tuple[date, int]]:
        """Minutes worked per day across all completed tasks"""
        rows = (
            self.db.query(TaskHistory.date, func.sum(TaskHistory.minutes_worked))
            .filter(TaskHistory.user_id == user_id, TaskHistory.completed.is_(True))
            .group_by(TaskHistory.date)
            .order_by(TaskHistory.date.asc())
            .all()
        )
        return [(day, int(minutes or 0)) for day, minutes in rows]

    # ==================== SCHEDULED TIMES ====================

    def _get_scheduled_time(self, task: Task, scheduled_time_id: int) -> TaskScheduledTime:
        slot = (
            self.db.query(TaskScheduledTime)
            .filter(TaskScheduledTime.id == scheduled_time_id, TaskScheduledTime.task_id == task.id)
            .first()
        )
        if not slot:
            raise NotFoundError("Scheduled time not found")
        return slot

    def _scheduled_total(self, task_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(TaskScheduledTime.duration), 0))
            .filter(TaskScheduledTime.task_id == task_id)
            .scalar()
        )
        return int(total)

    def _enqueue(self, job: SyncJob) -> None:
        if self.sync_queue is not None:
            self.sync_queue.submit(job)

    def get_scheduled_times(self, task_id: int, user_id: int) -> List[TaskScheduledTime]:
        task = self.get_task(task_id, user_id)
        return list(task.scheduled_times)

    def add_scheduled_time(self, task_id: int, user_id: int, data: ScheduledTimeCreate) -> TaskScheduledTime:
        task = self.get_task(task_id, user_id)

        # Checked before the insert
        is_first = self.db.query(TaskScheduledTime).filter(TaskScheduledTime.task_id == task.id).count() == 0

        slot = TaskScheduledTime(task_id=task.id, start_time=to_naive_utc(data.start_time), duration=data.duration)
        self.db.add(slot)
        self.db.flush()

        # The first slot reserves the original estimate; later slots make it the sum
        if not is_first:
            task.time_required = self._scheduled_total(task.id)

        self.db.commit()
        self.db.refresh(slot)

        self._enqueue(SyncJob.for_slot(SyncAction.CREATE, task, slot))
        return slot

    def update_scheduled_time(
        self, task_id: int, scheduled_time_id: int, user_id: int, data: ScheduledTimeUpdate
    ) -> TaskScheduledTime:
        task = self.get_task(task_id, user_id)
        slot = self._get_scheduled_time(task, scheduled_time_id)

        slot.start_time = to_naive_utc(data.start_time)
        slot.duration = data.duration
        self.db.flush()

        task.time_required = self._scheduled_total(task.id)
        self.db.commit()
        self.db.refresh(slot)

        self._enqueue(SyncJob.for_slot(SyncAction.UPDATE, task, slot, outlook_event_id=slot.outlook_event_id))
        return slot

    def delete_scheduled_time(self, task_id: int, scheduled_time_id: int, user_id: int) -> None:
        task = self.get_task(task_id, user_id)
        slot = self._get_scheduled_time(task, scheduled_time_id)
        job: Optional[SyncJob] = None
        if slot.outlook_event_id:
            job = SyncJob.for_slot(SyncAction.DELETE, task, slot, outlook_event_id=slot.outlook_event_id)

        task.scheduled_times.remove(slot)
        self.db.flush()

        task.time_required = self._scheduled_total(task.id)
        self.db.commit()

        if job:
            self._enqueue(job)
        else:
            logger.info("Skipping Outlook sync - no event ID stored for scheduled time %s", scheduled_time_id)
