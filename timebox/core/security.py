# Password hashing, JWT sessions and signed OAuth state

from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from timebox.config import Settings
from timebox.core.database import get_db
from timebox.core.timeutil import utcnow
from timebox.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

OUTLOOK_STATE_PURPOSE = "outlook_connect"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(settings: Settings, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(settings: Settings, token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def create_oauth_state(settings: Settings, user_id: int) -> str:
    """Signed, short-lived state carrying the user through the Outlook redirect."""
    return create_access_token(
        settings,
        {"sub": str(user_id), "purpose": OUTLOOK_STATE_PURPOSE},
        expires_delta=timedelta(minutes=settings.OAUTH_STATE_EXPIRE_MINUTES),
    )


def read_oauth_state(settings: Settings, state: str) -> Optional[int]:
    payload = decode_token(settings, state)
    if not payload or payload.get("purpose") != OUTLOOK_STATE_PURPOSE:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user, 401 otherwise."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    payload = decode_token(settings, token)
    if not payload or payload.get("purpose"):
        raise credentials_exception

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    return user
