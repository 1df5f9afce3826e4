# Settings

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./timebox.db"
    DATABASE_AUTH_TOKEN: Optional[str] = None  # hosted libSQL (Turso)

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 43200
    OAUTH_STATE_EXPIRE_MINUTES: int = 10

    # Outlook OAuth
    OUTLOOK_CLIENT_ID: Optional[str] = None
    OUTLOOK_CLIENT_SECRET: Optional[str] = None
    OUTLOOK_REDIRECT_URI: Optional[str] = None
    OUTLOOK_AUTHORITY: str = "https://login.microsoftonline.com/common"
    OUTLOOK_SUBSCRIPTION_MINUTES: int = 4230

    # App
    BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"
    SYNC_WORKERS: int = 4
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def outlook_redirect_uri(self) -> str:
        return self.OUTLOOK_REDIRECT_URI or f"{self.BASE_URL}/api/auth/outlook/callback"

    @property
    def outlook_webhook_url(self) -> str:
        return f"{self.BASE_URL}/api/outlook/webhook"

    @property
    def outlook_configured(self) -> bool:
        return bool(self.OUTLOOK_CLIENT_ID and self.OUTLOOK_CLIENT_SECRET)


def get_settings() -> Settings:
    return Settings()
