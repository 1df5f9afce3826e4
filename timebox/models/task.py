# Task, scheduled-time slot and history models

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from timebox.core.database import Base
from timebox.core.timeutil import utcnow


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic info
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Scheduling
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    time_required = Column(Integer, nullable=False)  # minutes
    scheduled_time = Column(DateTime, nullable=True)  # legacy single placement

    # Completion
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="tasks")
    scheduled_times = relationship(
        "TaskScheduledTime",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskScheduledTime.start_time",
    )
    history = relationship("TaskHistory", back_populates="task", cascade="all, delete-orphan")


class TaskScheduledTime(Base):
    __tablename__ = "task_scheduled_times"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    start_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    outlook_event_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="scheduled_times")


class TaskHistory(Base):
    __tablename__ = "task_history"
    __table_args__ = (
        Index("ix_task_history_user_date", "user_id", "date"),
        Index("ix_task_history_task_date", "task_id", "date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)

    date = Column(Date, nullable=False)
    completed = Column(Boolean, nullable=False, default=True)
    minutes_worked = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="history")
