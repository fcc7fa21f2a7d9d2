import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path before importing project packages
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import crud  # noqa: E402
from db import database as db_database  # noqa: E402
from utils import security  # noqa: E402


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets a fresh SQLite file with the seed catalogue loaded."""

    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False
        # cheapest cost factor bcrypt accepts; keeps hashing fast in tests
        security.BCRYPT_ROUNDS = 4

    async def asyncSetUp(self):
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM products;")
            await cur.fetchone()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def make_customer(self, client_type="retailer", email=None, name="Test"):
        email = email or f"{client_type}-{id(self)}@example.com"
        return await crud.register_customer(name, email, "secret123", client_type)

    async def make_product(
        self, name, wholesale, retail, stock=10, in_stock=True, category="Test"
    ):
        return await crud.create_product(
            name,
            category,
            wholesale,
            retail,
            descr=f"{name} for tests",
            in_stock=in_stock,
            stock_count=stock,
        )

    async def execute(self, sql, params=()):
        async with db_database.connect() as conn:
            await conn.execute(sql, params)

    async def scalar(self, sql, params=()):
        async with db_database.connect() as conn:
            cur = await conn.execute(sql, params)
            row = await cur.fetchone()
            await cur.close()
        return row[0]
