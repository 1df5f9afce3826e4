from typing import Optional, Literal

from timebox.models.outlook import SyncAction, SyncStatus
from timebox.schemas.base import CamelModel, UTCDateTime


class OutlookSyncRequest(CamelModel):
    task_id: int
    action: Literal["create", "update", "delete"]


class OutlookStatusResponse(CamelModel):
    connected: bool
    sync_enabled: Optional[bool] = None
    last_sync_at: Optional[UTCDateTime] = None
    subscription_expires_at: Optional[UTCDateTime] = None


class OutlookSyncRecordResponse(CamelModel):
    id: int
    task_id: Optional[int]
    scheduled_time_id: Optional[int]
    action: SyncAction
    status: SyncStatus
    event_id: Optional[str]
    error: Optional[str]
    created_at: UTCDateTime
