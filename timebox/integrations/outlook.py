"""Microsoft Graph calendar client.

Stateless functions: every call is one independent request with its own
bearer token. Failures are logged and turned into ``None``/``False``/``[]``
so callers never see an exception from Graph or the network.

OAuth (authorization code and refresh token grants) goes through msal.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import msal
import requests

from timebox.config import Settings
from timebox.core.timeutil import isoformat_utc, utcnow

logger = logging.getLogger(__name__)

GRAPH = "https://graph.microsoft.com/v1.0"
SCOPES = ["Calendars.ReadWrite"]  # msal adds offline_access itself
DEFAULT_TIMEOUT = 30

# Graph's ceiling for subscriptions on calendar resources
MAX_SUBSCRIPTION_MINUTES = 4230


@dataclass
class OutlookTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime


# ==================== OAUTH ====================

def _msal_app(settings: Settings) -> msal.ConfidentialClientApplication:
    return msal.ConfidentialClientApplication(
        settings.OUTLOOK_CLIENT_ID,
        client_credential=settings.OUTLOOK_CLIENT_SECRET,
        authority=settings.OUTLOOK_AUTHORITY,
    )


def _tokens_from_result(result: Dict[str, Any], fallback_refresh_token: Optional[str] = None) -> OutlookTokens:
    return OutlookTokens(
        access_token=result["access_token"],
        refresh_token=result.get("refresh_token") or fallback_refresh_token,
        expires_at=utcnow() + timedelta(seconds=int(result.get("expires_in", 3600))),
    )


def build_authorization_url(settings: Settings, state: str) -> str:
    return _msal_app(settings).get_authorization_request_url(
        SCOPES,
        state=state,
        redirect_uri=settings.outlook_redirect_uri,
        response_mode="query",
    )


def exchange_code_for_tokens(settings: Settings, code: str) -> Optional[OutlookTokens]:
    """Authorization-code grant."""
    try:
        result = _msal_app(settings).acquire_token_by_authorization_code(
            code,
            scopes=SCOPES,
            redirect_uri=settings.outlook_redirect_uri,
        )
    except (requests.RequestException, ValueError) as e:
        logger.error("Error exchanging authorization code: %s", e)
        return None

    if "access_token" not in result:
        logger.error(
            "Failed to exchange code for tokens: %s %s",
            result.get("error"),
            result.get("error_description"),
        )
        return None
    return _tokens_from_result(result)


def refresh_access_token(settings: Settings, refresh_token: str) -> Optional[OutlookTokens]:
    """Refresh-token grant. Keeps the old refresh token when none comes back."""
    if not settings.outlook_configured:
        logger.error("Outlook OAuth credentials not configured")
        return None

    try:
        result = _msal_app(settings).acquire_token_by_refresh_token(refresh_token, scopes=SCOPES)
    except (requests.RequestException, ValueError) as e:
        logger.error("Error refreshing Outlook token: %s", e)
        return None

    if "access_token" not in result:
        logger.error(
            "Failed to refresh Outlook token: %s %s",
            result.get("error"),
            result.get("error_description"),
        )
        return None
    return _tokens_from_result(result, fallback_refresh_token=refresh_token)


# ==================== HELPERS ====================

def _headers(access_token: str, **extra: str) -> Dict[str, str]:
    headers = {"Authorization": f"Bearer {access_token}"}
    headers.update(extra)
    return headers


def _log_failure(action: str, response: requests.Response) -> None:
    logger.error("Failed to %s - HTTP %s: %s", action, response.status_code, response.text)


def encode_client_state(calendar_id: str) -> str:
    return base64.b64encode(calendar_id.encode("utf-8")).decode("ascii")


def decode_client_state(client_state: Optional[str]) -> Optional[str]:
    if not client_state:
        return None
    try:
        return base64.b64decode(client_state, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def build_event_payload(
    subject: str,
    description: Optional[str],
    start: datetime,
    duration_minutes: int,
    time_zone: str = "UTC",
) -> Dict[str, Any]:
    """Graph event body for a block of ``duration_minutes`` starting at ``start`` (UTC)."""
    end = start + timedelta(minutes=duration_minutes)
    payload: Dict[str, Any] = {
        "subject": subject,
        "start": {"dateTime": isoformat_utc(start), "timeZone": time_zone},
        "end": {"dateTime": isoformat_utc(end), "timeZone": time_zone},
    }
    if description:
        payload["body"] = {"contentType": "text", "content": description}
    return payload


def _expiration(minutes: int) -> str:
    minutes = min(minutes, MAX_SUBSCRIPTION_MINUTES)
    return isoformat_utc(utcnow() + timedelta(minutes=minutes)) + "Z"


# ==================== CALENDARS ====================

def get_default_calendar_id(access_token: str) -> Optional[str]:
    """Prefer the calendar flagged default, else the first one."""
    try:
        r = requests.get(f"{GRAPH}/me/calendars", headers=_headers(access_token), timeout=DEFAULT_TIMEOUT)
        if not r.ok:
            _log_failure("fetch calendars", r)
            return None
        calendars = (r.json() or {}).get("value") or []
    except (requests.RequestException, ValueError) as e:
        logger.error("Error fetching calendar ID: %s", e)
        return None

    default = next((cal for cal in calendars if cal.get("isDefaultCalendar")), None)
    if default is None and calendars:
        default = calendars[0]
    return default.get("id") if default else None


# ==================== EVENTS ====================

def create_calendar_event(access_token: str, calendar_id: str, event: Dict[str, Any]) -> Optional[str]:
    logger.info(
        "Creating Outlook calendar event %r (%s - %s)",
        event.get("subject"),
        event["start"]["dateTime"],
        event["end"]["dateTime"],
    )
    try:
        r = requests.post(
            f"{GRAPH}/me/calendars/{calendar_id}/events",
            headers=_headers(access_token),
            json=event,
            timeout=DEFAULT_TIMEOUT,
        )
        if not r.ok:
            _log_failure("create calendar event", r)
            return None
        event_id = r.json().get("id")
    except (requests.RequestException, ValueError) as e:
        logger.error("Error creating calendar event: %s", e)
        return None

    logger.info("Outlook event created with ID %s", event_id)
    return event_id


def update_calendar_event(access_token: str, calendar_id: str, event_id: str, event: Dict[str, Any]) -> bool:
    try:
        r = requests.patch(
            f"{GRAPH}/me/calendars/{calendar_id}/events/{event_id}",
            headers=_headers(access_token),
            json=event,
            timeout=DEFAULT_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Error updating calendar event: %s", e)
        return False

    if not r.ok:
        _log_failure("update calendar event", r)
        return False
    return True


def delete_calendar_event(access_token: str, calendar_id: str, event_id: str) -> bool:
    try:
        r = requests.delete(
            f"{GRAPH}/me/calendars/{calendar_id}/events/{event_id}",
            headers=_headers(access_token),
            timeout=DEFAULT_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Error deleting calendar event: %s", e)
        return False

    if not r.ok:
        _log_failure("delete calendar event", r)
        return False
    return True


def fetch_calendar_events(
    access_token: str,
    calendar_id: str,
    start_date_time: str,
    end_date_time: str,
    time_zone: str = "UTC",
) -> List[Dict[str, Any]]:
    """Events in a window, expanded by calendarView and rendered in ``time_zone``."""
    try:
        r = requests.get(
            f"{GRAPH}/me/calendars/{calendar_id}/calendarView",
            headers=_headers(access_token, Prefer=f'outlook.timezone="{time_zone}"'),
            params={
                "startDateTime": start_date_time,
                "endDateTime": end_date_time,
                "$orderby": "start/dateTime",
            },
            timeout=DEFAULT_TIMEOUT,
        )
        if not r.ok:
            _log_failure("fetch calendar events", r)
            return []
        return (r.json() or {}).get("value") or []
    except (requests.RequestException, ValueError) as e:
        logger.error("Error fetching calendar events: %s", e)
        return []


# ==================== SUBSCRIPTIONS ====================

def create_calendar_subscription(
    access_token: str,
    calendar_id: str,
    notification_url: str,
    expiration_minutes: int = MAX_SUBSCRIPTION_MINUTES,
) -> Optional[Dict[str, str]]:
    """Webhook for created/updated/deleted events; clientState carries the calendar ID."""
    body = {
        "changeType": "created,updated,deleted",
        "notificationUrl": notification_url,
        "resource": f"/me/calendars/{calendar_id}/events",
        "expirationDateTime": _expiration(expiration_minutes),
        "clientState": encode_client_state(calendar_id),
    }
    try:
        r = requests.post(
            f"{GRAPH}/subscriptions",
            headers=_headers(access_token),
            json=body,
            timeout=DEFAULT_TIMEOUT,
        )
        if not r.ok:
            _log_failure("create subscription", r)
            return None
        data = r.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Error creating subscription: %s", e)
        return None

    return {"id": data["id"], "expirationDateTime": data["expirationDateTime"]}


def renew_calendar_subscription(
    access_token: str,
    subscription_id: str,
    expiration_minutes: int = MAX_SUBSCRIPTION_MINUTES,
) -> Optional[str]:
    """Extend a subscription; returns the new expirationDateTime or ``None``."""
    expiration = _expiration(expiration_minutes)
    try:
        r = requests.patch(
            f"{GRAPH}/subscriptions/{subscription_id}",
            headers=_headers(access_token),
            json={"expirationDateTime": expiration},
            timeout=DEFAULT_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Error renewing subscription: %s", e)
        return None

    if not r.ok:
        _log_failure("renew subscription", r)
        return None
    try:
        return r.json().get("expirationDateTime") or expiration
    except ValueError:
        return expiration


def delete_calendar_subscription(access_token: str, subscription_id: str) -> bool:
    try:
        r = requests.delete(
            f"{GRAPH}/subscriptions/{subscription_id}",
            headers=_headers(access_token),
            timeout=DEFAULT_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Error deleting subscription: %s", e)
        return False

    if not r.ok:
        _log_failure("delete subscription", r)
        return False
    return True
