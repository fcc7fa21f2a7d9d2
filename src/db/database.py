# manages connection to db, provides helper methods internal to db package
import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from sqlite3 import Row
from typing import AsyncIterator, Optional

import aiosqlite

from utils.logger import get_logger
from utils.security import hash_password

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

DB_PATH = os.getenv("COMMERCEHUB_DB_PATH", "data/commercehub.sqlite")
DB_INIT_SCRIPTS = [
    os.path.join(_HERE, "schema.sql"),
    os.path.join(_HERE, "seed.sql"),
]
BUSY_TIMEOUT = 5.0  # seconds a writer waits for the database lock

# demo accounts created together with the seed catalogue (password: "password")
DEMO_CUSTOMERS = [
    ("Rita Retail", "retail@example.com", "retailer"),
    ("Walt Wholesale", "wholesale@example.com", "wholesaler"),
]
DEMO_PASSWORD = "password"

_initialized = False
_init_lock = asyncio.Lock()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


async def _seed_demo_customers(conn: aiosqlite.Connection) -> None:
    now = to_db_time(utcnow())
    for name, email, client_type in DEMO_CUSTOMERS:
        await conn.execute(
            """
            INSERT OR IGNORE INTO customers(name, email, pwd_hash, client_type, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (name, email, hash_password(DEMO_PASSWORD), client_type, now),
        )


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info("Initializing database with script %s...", script)
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    await _seed_demo_customers(conn)
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> AsyncIterator[aiosqlite.Connection]:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    The connection runs in autocommit mode; group writes with
    ``transaction()``. Ensures the database is initialized (tables, seed
    products and demo customers) on first use.
    """
    global _initialized
    parent = os.path.dirname(DB_PATH)
    if parent:
        os.makedirs(parent, exist_ok=True)

    conn = await aiosqlite.connect(DB_PATH, timeout=BUSY_TIMEOUT, isolation_level=None)
    conn.row_factory = Row
    try:
        await conn.execute("PRAGMA foreign_keys = ON;")
        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    if not await _table_exists(conn, "customers"):
                        _logger.info("Initializing database at %s...", DB_PATH)
                        await _init_db(conn)
                    _initialized = True
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements as one unit.

    BEGIN IMMEDIATE takes the write lock up front, so a read-then-write
    sequence inside the block cannot interleave with another writer.
    Any exception rolls the whole block back and is re-raised.
    """
    await conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
    except BaseException:
        await conn.rollback()
        raise
    else:
        await conn.commit()
