"""
PostgreSQL connection helpers.
One connection per request; nothing is cached at module level.
"""

from typing import Any, Callable, Optional

import psycopg2

from backend.config import get_settings


class DatabaseNotConfigured(RuntimeError):
    """DATABASE_URL is missing."""


def connect(database_url: Optional[str] = None) -> Any:
    """Open an autocommit connection to DATABASE_URL."""
    database_url = database_url or get_settings().database_url
    if not database_url:
        raise DatabaseNotConfigured("DATABASE_URL environment variable is not set")

    conn = psycopg2.connect(database_url, connect_timeout=10)
    conn.autocommit = True
    return conn


def get_connector() -> Callable[[], Any]:
    """
    FastAPI dependency returning a connection factory.
    Endpoints open the connection only after the request has been validated.
    """
    return connect
