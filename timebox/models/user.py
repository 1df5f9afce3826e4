# User model

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from timebox.core.database import Base
from timebox.core.timeutil import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    password = Column(String, nullable=True)  # bcrypt hash, null for OAuth users
    image = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")
    reminders = relationship("Reminder", back_populates="user", cascade="all, delete-orphan")
    recurring_events = relationship(
        "RecurringEvent", back_populates="user", cascade="all, delete-orphan"
    )
    outlook_integration = relationship(
        "OutlookIntegration", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
