# All Outlook logic that touches the database

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from timebox.config import Settings
from timebox.core.exceptions import (
    BadRequestError,
    NotFoundError,
    OutlookNotConnectedError,
    OutlookUpstreamError,
)
from timebox.core.timeutil import parse_graph_datetime, utcnow
from timebox.integrations import outlook
from timebox.models.outlook import OutlookIntegration, OutlookSyncRecord, SyncAction, SyncStatus
from timebox.models.task import Task, TaskScheduledTime

logger = logging.getLogger(__name__)

TOKEN_REFRESH_BUFFER = timedelta(minutes=5)


@dataclass
class SyncJob:
    """One best-effort mirroring request, snapshotted at enqueue time.

    The snapshot lets a ``delete`` job run after the slot row is gone.
    """

    user_id: int
    action: SyncAction
    task_id: Optional[int] = None
    scheduled_time_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    duration: Optional[int] = None
    outlook_event_id: Optional[str] = None

    @classmethod
    def for_slot(cls, action: SyncAction, task: Task, slot: TaskScheduledTime, outlook_event_id: Optional[str] = None):
        return cls(
            user_id=task.user_id,
            action=action,
            task_id=task.id,
            scheduled_time_id=slot.id,
            title=task.title,
            description=task.description,
            start_time=slot.start_time,
            duration=slot.duration,
            outlook_event_id=outlook_event_id,
        )


@dataclass
class SyncResult:
    status: SyncStatus
    event_id: Optional[str] = None
    error: Optional[str] = None


class OutlookService:
    """Handles all Outlook interactions for one request or job"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    # ==================== TOKENS ====================

    def get_integration(self, user_id: int) -> Optional[OutlookIntegration]:
        return self.db.query(OutlookIntegration).filter(OutlookIntegration.user_id == user_id).first()

    def get_valid_access_token(self, user_id: int) -> Optional[str]:
        """Stored token, refreshed first when it expires within five minutes.

        Not locked: two concurrent callers may both refresh.
        """
        integration = self.get_integration(user_id)
        if not integration:
            return None

        if integration.expires_at - utcnow() >= TOKEN_REFRESH_BUFFER:
            return integration.access_token

        tokens = outlook.refresh_access_token(self.settings, integration.refresh_token)
        if not tokens:
            return None

        integration.access_token = tokens.access_token
        integration.refresh_token = tokens.refresh_token
        integration.expires_at = tokens.expires_at
        self.db.commit()
        logger.info("Refreshed Outlook access token for user %s", user_id)
        return tokens.access_token

    def require_active(self, user_id: int) -> Tuple[OutlookIntegration, str]:
        """Integration with sync on, a live token and a calendar, or raise."""
        integration = self.get_integration(user_id)
        if not integration or not integration.sync_enabled:
            raise OutlookNotConnectedError()

        access_token = self.get_valid_access_token(user_id)
        if not access_token:
            raise OutlookUpstreamError("Failed to get access token")

        if not integration.calendar_id:
            raise OutlookUpstreamError("Calendar ID not found")
        return integration, access_token

    # ==================== CONNECTION ====================

    def complete_connection(self, user_id: int, tokens: outlook.OutlookTokens) -> OutlookIntegration:
        """Store tokens from the OAuth callback and look up the default calendar."""
        calendar_id = outlook.get_default_calendar_id(tokens.access_token)

        integration = self.get_integration(user_id)
        if integration:
            integration.access_token = tokens.access_token
            integration.refresh_token = tokens.refresh_token
            integration.expires_at = tokens.expires_at
            integration.calendar_id = calendar_id or integration.calendar_id
        else:
            integration = OutlookIntegration(
                user_id=user_id,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expires_at=tokens.expires_at,
                calendar_id=calendar_id,
                sync_enabled=True,
            )
            self.db.add(integration)

        self.db.commit()
        self.db.refresh(integration)
        return integration

    def disconnect(self, user_id: int) -> bool:
        integration = self.get_integration(user_id)
        if not integration:
            return False

        if integration.subscription_id:
            access_token = self.get_valid_access_token(user_id)
            if access_token and not outlook.delete_calendar_subscription(access_token, integration.subscription_id):
                logger.warning("Could not delete subscription %s on disconnect", integration.subscription_id)

        self.db.delete(integration)
        self.db.commit()
        return True

    def status(self, user_id: int) -> Dict[str, Any]:
        integration = self.get_integration(user_id)
        if not integration:
            return {"connected": False}
        return {
            "connected": True,
            "sync_enabled": integration.sync_enabled,
            "last_sync_at": integration.last_sync_at,
            "subscription_expires_at": integration.subscription_expires_at,
        }

    # ==================== SUBSCRIPTIONS ====================

    def subscribe(self, user_id: int) -> OutlookIntegration:
        """Renew the stored subscription, or create one when renewal is not possible."""
        integration, access_token = self.require_active(user_id)
        minutes = self.settings.OUTLOOK_SUBSCRIPTION_MINUTES

        if integration.subscription_id:
            expiration = outlook.renew_calendar_subscription(access_token, integration.subscription_id, minutes)
            if expiration:
                integration.subscription_expires_at = parse_graph_datetime(expiration)
                self.db.commit()
                return integration
            logger.info("Renewal of subscription %s failed, creating a new one", integration.subscription_id)

        subscription = outlook.create_calendar_subscription(
            access_token,
            integration.calendar_id,
            self.settings.outlook_webhook_url,
            minutes,
        )
        if not subscription:
            raise OutlookUpstreamError("Failed to create subscription")

        integration.subscription_id = subscription["id"]
        integration.subscription_expires_at = parse_graph_datetime(subscription["expirationDateTime"])
        self.db.commit()
        return integration

    def record_notifications(self, payload: Dict[str, Any]) -> int:
        """Stamp lastSyncAt on the integration behind each notification.

        The changed events themselves are not fetched.
        """
        touched = 0
        for notification in payload.get("value") or []:
            calendar_id = outlook.decode_client_state(notification.get("clientState"))
            if not calendar_id:
                logger.error("Failed to decode client state")
                continue

            integration = (
                self.db.query(OutlookIntegration).filter(OutlookIntegration.calendar_id == calendar_id).first()
            )
            if not integration:
                logger.error("Integration not found for calendar %s", calendar_id)
                continue

            logger.info(
                "Outlook %s notification for user %s: %s",
                notification.get("changeType"),
                integration.user_id,
                notification.get("resource"),
            )
            integration.last_sync_at = utcnow()
            touched += 1

        self.db.commit()
        return touched

    # ==================== EVENTS ====================

    def list_events(self, user_id: int, start: str, end: str, time_zone: str = "UTC") -> List[Dict[str, Any]]:
        integration, access_token = self.require_active(user_id)
        return outlook.fetch_calendar_events(access_token, integration.calendar_id, start, end, time_zone)

    def delete_event(self, user_id: int, event_id: str) -> None:
        integration = self.get_integration(user_id)
        if not integration:
            raise OutlookNotConnectedError("Outlook not connected")

        access_token = self.get_valid_access_token(user_id)
        if not access_token:
            raise OutlookUpstreamError("Failed to get access token")

        if not outlook.delete_calendar_event(access_token, integration.calendar_id or "calendar", event_id):
            raise OutlookUpstreamError("Failed to delete event")

    def sync_task(self, user_id: int, task_id: int, action: str) -> Optional[str]:
        """Mirror a task's legacy single ``scheduledTime``.

        No event ID is stored on the task, so ``delete`` does nothing and
        ``update`` creates another event.
        """
        integration, access_token = self.require_active(user_id)

        task = self.db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
        if not task:
            raise NotFoundError("Task not found")

        if action == "delete":
            return None

        if not task.scheduled_time:
            raise BadRequestError("Task is not scheduled")

        event = outlook.build_event_payload(task.title, task.description, task.scheduled_time, task.time_required)
        event_id = outlook.create_calendar_event(access_token, integration.calendar_id, event)
        if not event_id:
            raise OutlookUpstreamError(f"Failed to {action} event")
        return event_id

    # ==================== SYNC JOBS ====================

    def run_job(self, job: SyncJob) -> SyncResult:
        if job.action == SyncAction.SUBSCRIBE:
            return self._run_subscribe(job)
        return self.sync_scheduled_time(job)

    def _run_subscribe(self, job: SyncJob) -> SyncResult:
        try:
            integration = self.subscribe(job.user_id)
        except (OutlookNotConnectedError, OutlookUpstreamError) as e:
            return SyncResult(SyncStatus.FAILED, error=e.detail)
        return SyncResult(SyncStatus.SUCCEEDED, event_id=integration.subscription_id)

    def sync_scheduled_time(self, job: SyncJob) -> SyncResult:
        """Mirror one slot change to the linked calendar."""
        integration = self.get_integration(job.user_id)
        if not integration or not integration.can_sync:
            return SyncResult(SyncStatus.SKIPPED, error="Outlook not connected or sync disabled")

        access_token = self.get_valid_access_token(job.user_id)
        if not access_token:
            return SyncResult(SyncStatus.FAILED, error="Failed to get access token")

        if job.action == SyncAction.DELETE:
            if not job.outlook_event_id:
                logger.info("No Outlook event ID to delete for scheduled time %s", job.scheduled_time_id)
                return SyncResult(SyncStatus.SKIPPED, error="No Outlook event ID recorded")
            if outlook.delete_calendar_event(access_token, integration.calendar_id, job.outlook_event_id):
                return SyncResult(SyncStatus.SUCCEEDED, event_id=job.outlook_event_id)
            return SyncResult(SyncStatus.FAILED, event_id=job.outlook_event_id, error="Failed to delete event")

        event = outlook.build_event_payload(job.title, job.description, job.start_time, job.duration)

        if job.action == SyncAction.UPDATE and job.outlook_event_id:
            if outlook.update_calendar_event(access_token, integration.calendar_id, job.outlook_event_id, event):
                return SyncResult(SyncStatus.SUCCEEDED, event_id=job.outlook_event_id)
            return SyncResult(SyncStatus.FAILED, event_id=job.outlook_event_id, error="Failed to update event")

        event_id = outlook.create_calendar_event(access_token, integration.calendar_id, event)
        if not event_id:
            return SyncResult(SyncStatus.FAILED, error="Failed to create event")

        slot = self.db.get(TaskScheduledTime, job.scheduled_time_id) if job.scheduled_time_id else None
        if slot is None:
            # Slot deleted while the event was being created; the event stays orphaned
            logger.warning("Scheduled time %s vanished before event %s was stored", job.scheduled_time_id, event_id)
        else:
            slot.outlook_event_id = event_id
            self.db.commit()
        return SyncResult(SyncStatus.SUCCEEDED, event_id=event_id)

    def record_result(self, job: SyncJob, result: SyncResult) -> OutlookSyncRecord:
        record = OutlookSyncRecord(
            user_id=job.user_id,
            task_id=job.task_id,
            scheduled_time_id=job.scheduled_time_id,
            action=job.action,
            status=result.status,
            event_id=result.event_id,
            error=result.error,
        )
        self.db.add(record)
        self.db.commit()
        return record

    def list_sync_records(self, user_id: int, limit: int = 50) -> List[OutlookSyncRecord]:
        return (
            self.db.query(OutlookSyncRecord)
            .filter(OutlookSyncRecord.user_id == user_id)
            .order_by(OutlookSyncRecord.created_at.desc(), OutlookSyncRecord.id.desc())
            .limit(limit)
            .all()
        )
