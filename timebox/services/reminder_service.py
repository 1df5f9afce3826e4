from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from timebox.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from timebox.models.reminder import RecurringEvent, Reminder
from timebox.schemas.reminder import (
    RecurringEventCreate,
    RecurringEventUpdate,
    ReminderCreate,
    ReminderUpdate,
)


def _owned(row, user_id: int, label: str):
    if row is None:
        raise NotFoundError(f"{label} not found")
    if row.user_id != user_id:
        raise ForbiddenError()
    return row


class ReminderService:
    def __init__(self, db: Session):
        self.db = db

    def get_reminders(self, user_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Reminder]:
        """All reminders, or those overlapping [start_date, end_date] when both are given"""
        query = self.db.query(Reminder).filter(Reminder.user_id == user_id)
        if start_date and end_date:
            query = query.filter(Reminder.start_date <= end_date, Reminder.end_date >= start_date)
        return query.order_by(Reminder.start_date.asc(), Reminder.id.asc()).all()

    def get_reminder(self, reminder_id: int, user_id: int) -> Reminder:
        return _owned(self.db.get(Reminder, reminder_id), user_id, "Reminder")

    def create_reminder(self, user_id: int, data: ReminderCreate) -> Reminder:
        reminder = Reminder(user_id=user_id, **data.model_dump())
        self.db.add(reminder)
        self.db.commit()
        self.db.refresh(reminder)
        return reminder

    def update_reminder(self, reminder_id: int, user_id: int, data: ReminderUpdate) -> Reminder:
        reminder = self.get_reminder(reminder_id, user_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(reminder, field, value)

        if reminder.end_date < reminder.start_date:
            self.db.rollback()
            raise BadRequestError("End date must not be before start date")

        self.db.commit()
        self.db.refresh(reminder)
        return reminder

    def delete_reminder(self, reminder_id: int, user_id: int) -> None:
        reminder = self.get_reminder(reminder_id, user_id)
        self.db.delete(reminder)
        self.db.commit()


class RecurringEventService:
    def __init__(self, db: Session):
        self.db = db

    def get_recurring_events(self, user_id: int) -> List[RecurringEvent]:
        return (
            self.db.query(RecurringEvent)
            .filter(RecurringEvent.user_id == user_id)
            .order_by(RecurringEvent.time_of_day.asc(), RecurringEvent.id.asc())
            .all()
        )

    def get_recurring_event(self, event_id: int, user_id: int) -> RecurringEvent:
        return _owned(self.db.get(RecurringEvent, event_id), user_id, "Recurring event")

    def create_recurring_event(self, user_id: int, data: RecurringEventCreate) -> RecurringEvent:
        event = RecurringEvent(
            user_id=user_id,
            title=data.title,
            description=data.description or None,
            time_of_day=data.time_of_day,
            duration=data.duration,
            enabled=True,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def update_recurring_event(self, event_id: int, user_id: int, data: RecurringEventUpdate) -> RecurringEvent:
        event = self.get_recurring_event(event_id, user_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "description":
                event.description = value or None
            elif value is not None:
                setattr(event, field, value)

        self.db.commit()
        self.db.refresh(event)
        return event

    def delete_recurring_event(self, event_id: int, user_id: int) -> None:
        event = self.get_recurring_event(event_id, user_id)
        self.db.delete(event)
        self.db.commit()
