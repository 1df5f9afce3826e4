from timebox.models.user import User
from timebox.models.task import Task, TaskScheduledTime, TaskHistory
from timebox.models.reminder import Reminder, RecurringEvent
from timebox.models.outlook import OutlookIntegration, OutlookSyncRecord, SyncAction, SyncStatus

__all__ = [
    "User",
    "Task",
    "TaskScheduledTime",
    "TaskHistory",
    "Reminder",
    "RecurringEvent",
    "OutlookIntegration",
    "OutlookSyncRecord",
    "SyncAction",
    "SyncStatus",
]
