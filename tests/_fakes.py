"""In-memory stand-in for the waitlist table, speaking just enough SQL for the app's queries."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from psycopg2 import errors as pg_errors


class FakeWaitlistDB:
    def __init__(self) -> None:
        self.rows: List[Tuple[Any, ...]] = []
        self.executed: List[str] = []
        self.table_exists = False
        # Set to an exception instance to make every statement fail with it.
        self.error: Optional[Exception] = None
        # Email lookups return nothing, as if another request had not committed yet.
        self.skip_lookup = False
        # Lookups wait here after taking their snapshot; used to force a race.
        self.lookup_barrier: Optional[threading.Barrier] = None
        self.connections: List["FakeConnection"] = []
        self._lock = threading.RLock()
        self._next_id = 1

    def connect(self) -> "FakeConnection":
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    def seed(self, name: str, email: str, struggle: str) -> Tuple[Any, ...]:
        with self._lock:
            row = (self._next_id, name, email, struggle, datetime.now(timezone.utc))
            self._next_id += 1
            self.rows.append(row)
        return row

    def emails(self) -> List[str]:
        return [row[2] for row in self.rows]


class FakeConnection:
    def __init__(self, db: FakeWaitlistDB) -> None:
        self.db = db
        self.closed = False
        self.autocommit = True

    def cursor(self) -> "FakeCursor":
        return FakeCursor(self.db)

    def close(self) -> None:
        self.closed = True


class FakeCursor:
    def __init__(self, db: FakeWaitlistDB) -> None:
        self.db = db
        self._result: List[Tuple[Any, ...]] = []

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def execute(self, sql: str, params: Tuple[Any, ...] = ()) -> None:
        db = self.db
        statement = " ".join(sql.split())
        db.executed.append(statement)
        if db.error is not None:
            raise db.error

        if "CREATE TABLE IF NOT EXISTS waitlist" in statement:
            db.table_exists = True
            self._result = []
        elif statement.startswith("INSERT INTO waitlist"):
            name, email, struggle = params
            with db._lock:
                if email in db.emails():
                    raise pg_errors.UniqueViolation(
                        'duplicate key value violates unique constraint "waitlist_email_key"'
                    )
                self._result = [db.seed(name, email, struggle)]
        elif "WHERE email = %s" in statement:
            found = [] if db.skip_lookup else [row for row in db.rows if row[2] == params[0]]
            if db.lookup_barrier is not None:
                db.lookup_barrier.wait(timeout=5)
            self._result = found
        elif "information_schema.tables" in statement:
            self._result = [(db.table_exists,)]
        elif statement.startswith("SELECT COUNT(*)"):
            self._result = [(len(db.rows),)]
        elif statement.startswith("SELECT"):
            self._result = sorted(db.rows, key=lambda row: (row[4], row[0]))
        else:
            self._result = []

    def fetchone(self) -> Optional[Tuple[Any, ...]]:
        return self._result[0] if self._result else None

    def fetchall(self) -> List[Tuple[Any, ...]]:
        return list(self._result)
