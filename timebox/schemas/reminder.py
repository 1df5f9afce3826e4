import re
from datetime import date
from typing import Optional

from pydantic import Field, field_validator, model_validator

from timebox.schemas.base import CamelModel, Minutes, UTCDateTime

TIME_OF_DAY_RE = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")


def _check_time_of_day(value: Optional[str]) -> Optional[str]:
    if value is not None and not TIME_OF_DAY_RE.match(value):
        raise ValueError("Invalid time format. Use HH:mm")
    return value


# ==================== REMINDERS ====================

class ReminderCreate(CamelModel):
    text: str = Field(..., min_length=1)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class ReminderUpdate(CamelModel):
    text: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReminderResponse(CamelModel):
    id: int
    text: str
    start_date: date
    end_date: date
    created_at: UTCDateTime
    updated_at: UTCDateTime


# ==================== RECURRING EVENTS ====================

class RecurringEventCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    time_of_day: str
    duration: Minutes = Field(..., ge=0)

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, value):
        return _check_time_of_day(value)


class RecurringEventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    time_of_day: Optional[str] = None
    duration: Optional[Minutes] = Field(default=None, ge=0)
    enabled: Optional[bool] = None

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, value):
        return _check_time_of_day(value)


class RecurringEventResponse(CamelModel):
    id: int
    title: str
    description: Optional[str]
    time_of_day: str
    duration: int
    enabled: bool
    created_at: UTCDateTime
