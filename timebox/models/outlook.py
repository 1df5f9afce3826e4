# Outlook integration and sync outcome models

import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from timebox.core.database import Base
from timebox.core.timeutil import utcnow


class SyncAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SUBSCRIBE = "subscribe"


class SyncStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class OutlookIntegration(Base):
    __tablename__ = "outlook_integrations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    # OAuth tokens
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    # Calendar and webhook
    calendar_id = Column(String, nullable=True, index=True)
    subscription_id = Column(String, nullable=True)
    subscription_expires_at = Column(DateTime, nullable=True)

    sync_enabled = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="outlook_integration")

    @property
    def can_sync(self) -> bool:
        return bool(self.sync_enabled and self.calendar_id)


class OutlookSyncRecord(Base):
    __tablename__ = "outlook_sync_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Plain columns, not foreign keys: the record outlives the slot it describes
    task_id = Column(Integer, nullable=True)
    scheduled_time_id = Column(Integer, nullable=True)

    action = Column(SQLEnum(SyncAction), nullable=False)
    status = Column(SQLEnum(SyncStatus), nullable=False)
    event_id = Column(String, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
