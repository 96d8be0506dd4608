import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import aiosqlite
import structlog

from subagent_hub.config import settings

logger = structlog.get_logger()

_db: aiosqlite.Connection | None = None
_write_locks: weakref.WeakKeyDictionary[aiosqlite.Connection, asyncio.Lock] = (
    weakref.WeakKeyDictionary()
)

DDL_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        full_name TEXT,
        avatar_url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS agents (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL,
        description TEXT NOT NULL,
        short_description TEXT,
        content TEXT NOT NULL,
        tools TEXT NOT NULL DEFAULT '[]',
        tags TEXT NOT NULL DEFAULT '[]',
        category_id TEXT,
        version TEXT,
        status TEXT NOT NULL DEFAULT 'draft',
        author_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        import_source TEXT NOT NULL DEFAULT 'manual',
        file_path TEXT,
        github_url TEXT,
        github_repo_name TEXT,
        github_owner TEXT,
        original_author_github_username TEXT,
        original_author_github_url TEXT,
        original_author_avatar_url TEXT,
        github_stars INTEGER NOT NULL DEFAULT 0,
        download_count INTEGER NOT NULL DEFAULT 0,
        view_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(author_id, name)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_agents_name ON agents(name)",
    "CREATE INDEX IF NOT EXISTS idx_agents_category ON agents(category_id)",
]


async def connect(db_path: str) -> aiosqlite.Connection:
    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")

    for ddl in DDL_STATEMENTS:
        await db.execute(ddl)
    await db.commit()
    return db


async def init_database() -> None:
    global _db
    _db = await connect(settings.db_path)
    logger.info("database_initialized", path=settings.db_path)


async def close_database() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("database_closed")


def get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _db


async def check_health() -> None:
    db = get_db()
    cursor = await db.execute("SELECT 1")
    await cursor.close()


@asynccontextmanager
async def transaction(db: aiosqlite.Connection) -> AsyncIterator[None]:
    """Run a unit of writes inside its own savepoint and commit it.

    Units on one connection are serialized. When the body raises, only the
    unit's own writes are rolled back; writes other requests made earlier on
    the shared connection are kept.
    """
    lock = _write_locks.get(db)
    if lock is None:
        lock = _write_locks[db] = asyncio.Lock()

    async with lock:
        savepoint = f"sp_{uuid4().hex}"
        await db.execute(f"SAVEPOINT {savepoint}")
        try:
            yield
        except BaseException:
            await db.execute(f"ROLLBACK TO {savepoint}")
            await db.execute(f"RELEASE {savepoint}")
            raise
        await db.execute(f"RELEASE {savepoint}")
        await db.commit()
