import os
import sqlite3
import unittest
from unittest import mock

from support import DatabaseTestCase, db_database


class ConnectTestCase(DatabaseTestCase):
    async def test_foreign_keys_enabled(self):
        async with db_database.connect() as conn:
            cur = await conn.execute("PRAGMA foreign_keys;")
            row = await cur.fetchone()
            await cur.close()
        self.assertEqual(row[0], 1)

    async def test_failed_initialization_closes_connection(self):
        broken = os.path.join(self.temp_dir.name, "broken.sql")
        with open(broken, "w", encoding="utf-8") as f:
            f.write("CREATE TABLE customers (;")
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "fresh.sqlite")
        db_database._initialized = False

        opened = []
        real_connect = db_database.aiosqlite.connect

        def tracking_connect(*args, **kwargs):
            conn = real_connect(*args, **kwargs)
            opened.append(conn)
            return conn

        with mock.patch.object(db_database, "DB_INIT_SCRIPTS", [broken]), mock.patch.object(
            db_database.aiosqlite, "connect", side_effect=tracking_connect
        ):
            with self.assertRaises(sqlite3.OperationalError):
                async with db_database.connect():
                    pass

        self.assertEqual(len(opened), 1)
        self.assertFalse(db_database._initialized)
        with self.assertRaises(ValueError):
            await opened[0].execute("SELECT 1;")


if __name__ == "__main__":
    unittest.main()
