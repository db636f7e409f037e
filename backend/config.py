"""
Runtime configuration.
Values come from environment variables (a local .env is loaded by main.py).
"""

from __future__ import annotations

import os
from typing import List, Optional

from pydantic import BaseModel, field_validator


DEFAULT_EMAIL_API_URL = "https://api.resend.com/emails"

SECONDS_ENV_NAMES = {
    "bulk_email_delay": "BULK_EMAIL_DELAY_SECONDS",
    "email_timeout": "EMAIL_TIMEOUT_SECONDS",
}


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    database_url: Optional[str] = None
    resend_api_key: Optional[str] = None
    email_from: str = "Waitlist <onboarding@resend.dev>"
    welcome_subject: str = "You're on the waitlist!"
    send_welcome_email: bool = True
    struggle_options: List[str] = []
    bulk_email_delay: float = 0.6
    email_api_url: str = DEFAULT_EMAIL_API_URL
    email_timeout: float = 10.0
    admin_token: Optional[str] = None
    allowed_origins: List[str] = ["*"]

    @field_validator("bulk_email_delay", "email_timeout", mode="before")
    @classmethod
    def _parse_seconds(cls, value, info):
        env_name = SECONDS_ENV_NAMES[info.field_name]
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{env_name} must be a number of seconds, got {value!r}")
        if seconds < 0:
            raise ValueError(f"{env_name} must not be negative, got {value!r}")
        return seconds

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        email_from=os.getenv("WAITLIST_EMAIL_FROM") or Settings.model_fields["email_from"].default,
        welcome_subject=os.getenv("WAITLIST_WELCOME_SUBJECT") or Settings.model_fields["welcome_subject"].default,
        send_welcome_email=_env_bool("SEND_WELCOME_EMAIL", True),
        struggle_options=_split_csv(os.getenv("WAITLIST_STRUGGLE_OPTIONS")),
        bulk_email_delay=os.getenv("BULK_EMAIL_DELAY_SECONDS") or 0.6,
        email_api_url=os.getenv("EMAIL_API_URL") or DEFAULT_EMAIL_API_URL,
        email_timeout=os.getenv("EMAIL_TIMEOUT_SECONDS") or 10,
        admin_token=os.getenv("ADMIN_API_TOKEN") or None,
        allowed_origins=_split_csv(os.getenv("CORS_ALLOW_ORIGINS")) or ["*"],
    )
