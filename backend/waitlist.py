"""
Waitlist intake.

Validates a signup, deduplicates by normalized email and stores new rows in
the waitlist table. Duplicate emails are a success, not an error: the
lookup covers the common case and the UNIQUE constraint covers two requests
racing past the lookup.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from psycopg2 import errors as pg_errors

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254

MSG_CREATED = "Added to waitlist. Check your email for updates!"
MSG_ALREADY_REGISTERED = "You're already on the waitlist."
MSG_INVALID_EMAIL = "Invalid email address."
MSG_INVALID_STRUGGLE = "Invalid struggle selection"

REQUIRED_FIELDS = (
    ("name", "Name is required"),
    ("email", "Email is required"),
    ("struggle", "Struggle selection is required"),
)

_COLUMNS = "id, name, email, struggle, created_at"


class WaitlistValidationError(ValueError):
    """A client-fixable problem with a submission."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass(frozen=True)
class Submission:
    name: str
    email: str
    struggle: str


@dataclass(frozen=True)
class WaitlistResult:
    created: bool
    entry: Optional[Dict[str, Any]] = None

    @property
    def status_code(self) -> int:
        return 201 if self.created else 200

    @property
    def message(self) -> str:
        return MSG_CREATED if self.created else MSG_ALREADY_REGISTERED


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return len(email) <= MAX_EMAIL_LENGTH and bool(EMAIL_RE.match(email))


def validate_submission(
    payload: Any,
    struggle_options: Optional[Iterable[str]] = None,
) -> Submission:
    """
    Check a raw request payload and return a cleaned Submission.

    Order: presence of all three fields, email shape, struggle selection.
    Raises WaitlistValidationError naming the first offending field.
    """
    if not isinstance(payload, dict):
        raise WaitlistValidationError("body", "Request body must be a JSON object")

    for field, message in REQUIRED_FIELDS:
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            raise WaitlistValidationError(field, message)

    email = normalize_email(payload["email"])
    if not is_valid_email(email):
        raise WaitlistValidationError("email", MSG_INVALID_EMAIL)

    struggle = payload["struggle"].strip()
    options = list(struggle_options or [])
    if not struggle or (options and struggle not in options):
        raise WaitlistValidationError("struggle", MSG_INVALID_STRUGGLE)

    return Submission(name=payload["name"].strip(), email=email, struggle=struggle)


def _row_to_entry(row: Any) -> Dict[str, Any]:
    return {
        "id": row[0],
        "name": row[1],
        "email": row[2],
        "struggle": row[3],
        "created_at": row[4],
    }


def find_entry_by_email(conn: Any, email: str) -> Optional[Dict[str, Any]]:
    """Exact-match lookup on an already normalized email."""
    with conn.cursor() as cur:
        cur.execute(f"SELECT {_COLUMNS} FROM waitlist WHERE email = %s", (email,))
        row = cur.fetchone()
    return _row_to_entry(row) if row else None


def insert_entry(conn: Any, submission: Submission) -> Dict[str, Any]:
    """
    Insert a new row; created_at is assigned by the database.
    Raises psycopg2.errors.UniqueViolation if the email already exists.
    """
    with conn.cursor() as cur:
        cur.execute(
            f"""
            INSERT INTO waitlist (name, email, struggle, created_at)
            VALUES (%s, %s, %s, NOW())
            RETURNING {_COLUMNS}
            """,
            (submission.name, submission.email, submission.struggle),
        )
        row = cur.fetchone()
    return _row_to_entry(row)


def list_entries(conn: Any) -> List[Dict[str, Any]]:
    """All waitlist rows, oldest first."""
    with conn.cursor() as cur:
        cur.execute(f"SELECT {_COLUMNS} FROM waitlist ORDER BY created_at, id")
        rows = cur.fetchall()
    return [_row_to_entry(row) for row in rows]


def add_to_waitlist(conn: Any, submission: Submission) -> WaitlistResult:
    """Store a validated submission unless its email is already registered."""
    existing = find_entry_by_email(conn, submission.email)
    if existing:
        logger.info(f"[WAITLIST] Already registered: id={existing['id']}")
        return WaitlistResult(created=False, entry=existing)

    try:
        entry = insert_entry(conn, submission)
    except pg_errors.UniqueViolation:
        logger.info("[WAITLIST] Insert lost a race on the email unique constraint; treating as already registered")
        return WaitlistResult(created=False)

    logger.info(f"[WAITLIST] Added entry id={entry['id']} struggle={entry['struggle']!r}")
    return WaitlistResult(created=True, entry=entry)
