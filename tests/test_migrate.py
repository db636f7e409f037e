import os
import unittest
from unittest.mock import patch

import psycopg2

from backend.db import migrate
from tests._fakes import FakeWaitlistDB


class MigrationTests(unittest.TestCase):
    def setUp(self):
        self.db = FakeWaitlistDB()

    def test_requires_database_url(self):
        with patch.dict(os.environ, {"DATABASE_URL": ""}):
            success, message = migrate.run_migration()
        self.assertFalse(success)
        self.assertIn("DATABASE_URL", message)

    def test_applies_schema(self):
        conn = self.db.connect()
        with patch.object(migrate, "connect", return_value=conn):
            success, message = migrate.run_migration("postgresql://localhost/waitlist")
        self.assertTrue(success, message)
        self.assertTrue(self.db.table_exists)
        self.assertTrue(any("CREATE TABLE IF NOT EXISTS waitlist" in s for s in self.db.executed))
        self.assertTrue(conn.closed)

    def test_database_error_is_reported(self):
        conn = self.db.connect()
        self.db.error = psycopg2.ProgrammingError("syntax error")
        with patch.object(migrate, "connect", return_value=conn):
            success, message = migrate.run_migration("postgresql://localhost/waitlist")
        self.assertFalse(success)
        self.assertIn("syntax error", message)
        self.assertTrue(conn.closed)

    def test_status_before_migration(self):
        status = migrate.migration_status(self.db.connect())
        self.assertEqual(status, {"waitlist_table_exists": False, "waitlist_count": 0, "migration_needed": True})

    def test_schema_enforces_unique_email(self):
        schema = migrate.SCHEMA_FILE.read_text()
        self.assertIn("email TEXT NOT NULL UNIQUE", schema)


if __name__ == "__main__":
    unittest.main()
