# Credential sign-in + Outlook OAuth

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import Optional

from timebox.config import Settings
from timebox.core.database import get_db
from timebox.core.security import (
    create_access_token,
    create_oauth_state,
    get_app_settings,
    get_current_user,
    hash_password,
    read_oauth_state,
    verify_password,
)
from timebox.integrations import outlook
from timebox.models.outlook import SyncAction
from timebox.models.user import User
from timebox.schemas.auth import LoginRequest, TokenResponse, UserResponse
from timebox.services.outlook_service import OutlookService, SyncJob
from timebox.services.sync_queue import OutlookSyncQueue, get_sync_queue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db)
):
    """
    Sign in with email and password.
    The first sign-in with an unknown email creates the account.
    """
    user = db.query(User).filter(User.email == credentials.email).first()

    if not user:
        user = User(
            email=credentials.email,
            name=credentials.email.split("@")[0],
            password=hash_password(credentials.password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created user %s on first sign-in", user.id)
    elif not user.password or not verify_password(credentials.password, user.password):
        # OAuth-only accounts have no password
        raise HTTPException(status_code=401, detail="Invalid email or password")

    access_token = create_access_token(settings, data={"sub": str(user.id)})
    return TokenResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user info"""
    return user


@router.get("/outlook")
def outlook_login(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings)
):
    """
    Step 1: Get Microsoft OAuth URL
    Frontend redirects the user there
    """
    if not settings.outlook_configured:
        raise HTTPException(status_code=500, detail="Outlook OAuth not configured")

    state = create_oauth_state(settings, user.id)
    return {"authUrl": outlook.build_authorization_url(settings, state)}


@router.get("/outlook/callback")
def outlook_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
    sync_queue: OutlookSyncQueue = Depends(get_sync_queue)
):
    """
    Step 2: Handle Microsoft callback
    Exchange code for tokens, link the default calendar, subscribe in the background
    """
    def back_to_app(query: str) -> RedirectResponse:
        return RedirectResponse(f"{settings.FRONTEND_URL}/?{query}", status_code=307)

    if error:
        return back_to_app(f"error={quote(error)}")
    if not code or not state:
        return back_to_app("error=missing_params")

    user_id = read_oauth_state(settings, state)
    if user_id is None or db.get(User, user_id) is None:
        return back_to_app("error=invalid_state")

    if not settings.outlook_configured:
        return back_to_app("error=not_configured")

    try:
        tokens = outlook.exchange_code_for_tokens(settings, code)
        if not tokens:
            return back_to_app("error=token_exchange_failed")

        integration = OutlookService(db, settings).complete_connection(user_id, tokens)
    except Exception:
        logger.exception("Error in Outlook OAuth callback")
        return back_to_app("error=callback_error")

    if integration.calendar_id:
        sync_queue.submit(SyncJob(user_id=user_id, action=SyncAction.SUBSCRIBE))

    return back_to_app("outlook_connected=true")
