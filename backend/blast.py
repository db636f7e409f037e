"""
Bulk email blast.

Sends the welcome message to every waitlist row, one at a time, sleeping a
fixed delay between sends to stay under the provider's rate limit.
Individual failures are collected; the loop always runs to the end.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from backend.config import Settings, get_settings
from backend.notifications import send_welcome_email
from backend.waitlist import list_entries

logger = logging.getLogger(__name__)


def run_email_blast(
    conn: Any,
    settings: Optional[Settings] = None,
    delay: Optional[float] = None,
    send: Callable[..., Dict[str, Any]] = send_welcome_email,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Email every stored signup.

    Returns:
        {"success", "total", "sent", "failed", "failures": [{"email", "error"}]}
        with sent + failed == total.
    """
    settings = settings or get_settings()
    if delay is None:
        delay = settings.bulk_email_delay

    entries = list_entries(conn)
    total = len(entries)
    logger.info(f"[BULK_EMAIL] Starting blast: total={total} delay={delay}s")

    sent = 0
    failures: List[Dict[str, str]] = []
    start_time = time.time()

    for i, entry in enumerate(entries):
        if i > 0 and delay > 0:
            sleep(delay)

        try:
            result = send(entry["name"], entry["email"], settings=settings)
        except Exception as e:
            logger.error(f"[BULK_EMAIL] Send to {entry['email']} raised: {e}")
            result = {"ok": False, "error": str(e)}

        if result.get("ok"):
            sent += 1
        else:
            failures.append({
                "email": entry["email"],
                "error": result.get("error") or "unknown error",
            })

    total_time = round(time.time() - start_time, 2)
    logger.info(f"[BULK_EMAIL] Complete: sent={sent} failed={len(failures)} in {total_time}s")

    return {
        "success": True,
        "total": total,
        "sent": sent,
        "failed": len(failures),
        "failures": failures,
    }
