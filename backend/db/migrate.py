"""
Database migration utility.
Creates the waitlist table on app startup (schema.sql uses IF NOT EXISTS, so it is safe to re-run).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import psycopg2

from backend.db.connection import DatabaseNotConfigured, connect

logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).resolve().parent / "schema.sql"
MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
WAITLIST_TABLE = "waitlist"


def check_table_exists(conn: Any, table_name: str) -> bool:
    """Check if a table exists in the public schema."""
    with conn.cursor() as cur:
        cur.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = %s
            );
        """, (table_name,))
        return bool(cur.fetchone()[0])


def migration_status(conn: Any) -> Dict[str, Any]:
    """Report whether the waitlist table exists and how many rows it holds."""
    exists = check_table_exists(conn, WAITLIST_TABLE)
    count = 0
    if exists:
        with conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM waitlist;")
            count = cur.fetchone()[0]
    return {
        "waitlist_table_exists": exists,
        "waitlist_count": count,
        "migration_needed": not exists,
    }


def run_migration(database_url: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    Apply backend/db/schema.sql, then any extra *.sql files in backend/db/migrations.

    Returns:
        Tuple of (success, message). On failure the message carries the error.
    """
    logger.info("[MIGRATION] Starting")

    try:
        schema_sql = SCHEMA_FILE.read_text()
    except OSError as e:
        logger.error(f"[MIGRATION] Failed to read schema file {SCHEMA_FILE}: {e}")
        return False, f"Failed to read schema file: {e}"

    try:
        conn = connect(database_url)
    except DatabaseNotConfigured as e:
        return False, str(e)
    except psycopg2.Error as e:
        logger.error(f"[MIGRATION] Database connection failed: {e}")
        return False, f"Database error: {e}"

    try:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        logger.info("[MIGRATION] Schema applied")

        if MIGRATIONS_DIR.exists():
            for migration_file in sorted(MIGRATIONS_DIR.glob("*.sql")):
                logger.info(f"[MIGRATION] Running {migration_file.name}")
                with conn.cursor() as cur:
                    cur.execute(migration_file.read_text())

        if not check_table_exists(conn, WAITLIST_TABLE):
            return False, "Migration executed but the waitlist table was not created"

        logger.info("[MIGRATION] Completed")
        return True, "Migration completed successfully"
    except psycopg2.Error as e:
        logger.error(f"[MIGRATION] Database error: {e}")
        return False, f"Database error: {e}"
    finally:
        conn.close()
