# Outlook calendar sync, events, status and webhook

import json
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session
from typing import List

from timebox.config import Settings
from timebox.core.database import get_db
from timebox.core.security import get_app_settings, get_current_user
from timebox.models.user import User
from timebox.schemas.outlook import OutlookStatusResponse, OutlookSyncRecordResponse, OutlookSyncRequest
from timebox.services.outlook_service import OutlookService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=OutlookStatusResponse, response_model_exclude_none=True)
def get_status(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Whether Outlook is connected and when it last heard from Graph"""
    return OutlookService(db, settings).status(user.id)


@router.post("/disconnect")
def disconnect(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Drop the webhook subscription and the stored tokens"""
    OutlookService(db, settings).disconnect(user.id)
    return {"success": True}


@router.post("/subscribe")
def subscribe(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Create or renew the calendar webhook subscription"""
    integration = OutlookService(db, settings).subscribe(user.id)
    return {
        "success": True,
        "subscriptionId": integration.subscription_id,
        "expiresAt": integration.subscription_expires_at.isoformat() + "Z",
    }


@router.post("/sync")
def sync_task(
    data: OutlookSyncRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Push a task's single scheduled time to Outlook"""
    event_id = OutlookService(db, settings).sync_task(user.id, data.task_id, data.action)
    if event_id:
        return {"success": True, "eventId": event_id}
    return {"success": True}


@router.get("/sync-records", response_model=List[OutlookSyncRecordResponse])
def get_sync_records(
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Outcome of recent background sync jobs, newest first"""
    return OutlookService(db, settings).list_sync_records(user.id, limit)


@router.get("/events")
def get_events(
    start_date_time: str = Query(..., alias="startDateTime"),
    end_date_time: str = Query(..., alias="endDateTime"),
    time_zone: str = Query("UTC", alias="timeZone"),
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Fetch Outlook calendar events in a window"""
    events = OutlookService(db, settings).list_events(user.id, start_date_time, end_date_time, time_zone)
    return {"events": events}


@router.delete("/events/{event_id}")
def delete_event(
    event_id: str,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """Delete an Outlook calendar event"""
    OutlookService(db, settings).delete_event(user.id, event_id)
    return {"success": True}


# ==================== WEBHOOK ====================

@router.get("/webhook")
def webhook_validation(validation_token: str = Query(None, alias="validationToken")):
    """Subscription validation handshake"""
    if validation_token:
        return PlainTextResponse(validation_token)
    return JSONResponse({"detail": "Invalid request"}, status_code=status.HTTP_400_BAD_REQUEST)


@router.post("/webhook")
async def webhook(request: Request):
    """
    Change notifications from Microsoft Graph.
    Always answers 202 so Graph does not retry.
    """
    validation_token = request.query_params.get("validationToken")
    try:
        body = await request.body()
        payload = json.loads(body) if body else {}
    except ValueError:
        payload = {}

    if not validation_token and isinstance(payload, dict):
        validation_token = payload.get("validationToken")
    if validation_token:
        return PlainTextResponse(validation_token)

    try:
        db = request.app.state.database.session()
        try:
            OutlookService(db, request.app.state.settings).record_notifications(payload)
        finally:
            db.close()
    except Exception:
        logger.exception("Error processing webhook")
        return JSONResponse({"error": "Processing failed"}, status_code=status.HTTP_202_ACCEPTED)

    return JSONResponse({"success": True}, status_code=status.HTTP_202_ACCEPTED)
