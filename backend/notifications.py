"""
Transactional email via the Resend HTTP API.

Delivery problems are reported, never allowed to undo a signup: callers on
the intake path use send_welcome_email(), which logs and returns a result
dict instead of raising.
"""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from backend.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """The provider could not be reached or refused the message."""


def render_welcome_email(name: str, settings: Optional[Settings] = None) -> Tuple[str, str]:
    """Return (subject, html) for the welcome message."""
    settings = settings or get_settings()
    safe_name = html.escape(name.strip() or "there")
    body = (
        f"<p>Hi {safe_name},</p>"
        "<p>Thanks for joining the waitlist. You're on the list, and we'll "
        "email you as soon as there's something to try.</p>"
        "<p>Talk soon.</p>"
    )
    return settings.welcome_subject, body


def send_email(to: str, subject: str, html_body: str, settings: Optional[Settings] = None) -> Optional[str]:
    """
    Send one message. Returns the provider message id.

    Raises:
        EmailDeliveryError: missing API key, transport failure, or non-2xx response
    """
    settings = settings or get_settings()
    if not settings.resend_api_key:
        raise EmailDeliveryError("RESEND_API_KEY not set in environment variables")

    try:
        response = requests.post(
            settings.email_api_url,
            headers={
                "Authorization": f"Bearer {settings.resend_api_key}",
                "Content-Type": "application/json",
            },
            json={
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": html_body,
            },
            timeout=settings.email_timeout,
        )
    except requests.RequestException as e:
        raise EmailDeliveryError(f"Email provider unreachable: {e}") from e

    if not response.ok:
        raise EmailDeliveryError(f"Email provider returned {response.status_code}: {response.text[:200]}")

    try:
        data = response.json()
    except ValueError:
        data = {}
    return data.get("id") if isinstance(data, dict) else None


def send_welcome_email(name: str, email: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Send the welcome message to one signup. Never raises on delivery failure."""
    settings = settings or get_settings()
    subject, body = render_welcome_email(name, settings)
    try:
        message_id = send_email(email, subject, body, settings)
    except EmailDeliveryError as e:
        logger.warning(f"[EMAIL] Welcome email to {email} failed: {e}")
        return {"ok": False, "email": email, "error": str(e)}
    except Exception as e:
        logger.exception(f"[EMAIL] Unexpected error sending welcome email to {email}")
        return {"ok": False, "email": email, "error": str(e)}

    logger.info(f"[EMAIL] Welcome email sent to {email} id={message_id}")
    return {"ok": True, "email": email, "id": message_id}
