from pydantic import Field
from datetime import date, datetime
from typing import Optional, List

from timebox.schemas.base import CamelModel, Minutes, UTCDateTime


class TaskBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    start_date: date
    due_date: date
    time_required: Minutes = Field(..., ge=0)
    scheduled_time: Optional[datetime] = None


class TaskCreate(TaskBase):
    pass


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    time_required: Optional[Minutes] = Field(default=None, ge=0)
    scheduled_time: Optional[datetime] = None
    completed: Optional[bool] = None


class ScheduledTimeCreate(CamelModel):
    start_time: datetime
    duration: Minutes = Field(..., ge=0)


class ScheduledTimeUpdate(ScheduledTimeCreate):
    pass


class ScheduledTimeResponse(CamelModel):
    id: int
    task_id: int
    start_time: UTCDateTime
    duration: int
    outlook_event_id: Optional[str] = None


class TaskResponse(CamelModel):
    id: int
    title: str
    description: Optional[str]
    start_date: date
    due_date: date
    time_required: int
    scheduled_time: Optional[UTCDateTime] = None
    completed: bool
    completed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    scheduled_times: List[ScheduledTimeResponse] = []


class HistoryEntry(CamelModel):
    date: date
    minutes_worked: int
