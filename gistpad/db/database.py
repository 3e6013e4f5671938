import logging
from pathlib import Path

import aiosqlite

from gistpad.config import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_db: aiosqlite.Connection | None = None


async def init_db(database_path: str | None = None) -> aiosqlite.Connection:
    global _db
    path = database_path or settings.database_path
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    _db = await connect(path)
    logger.info("Database initialized at %s", path)
    return _db


async def connect(path: str) -> aiosqlite.Connection:
    """Open a connection and bring its schema up to date."""
    conn = await aiosqlite.connect(path)
    conn.row_factory = aiosqlite.Row
    if path != ":memory:":
        await conn.execute("PRAGMA journal_mode=WAL")
    await run_migrations(conn)
    return conn


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


async def run_migrations(db: aiosqlite.Connection) -> int:
    if not MIGRATIONS_DIR.exists():
        return 0

    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            current_version = row[0] if row and row[0] else 0
    except aiosqlite.OperationalError:
        current_version = 0

    for mf in sorted(MIGRATIONS_DIR.glob("*.sql")):
        version = int(mf.stem.split("_")[0])
        if version > current_version:
            logger.info("Applying migration %s", mf.name)
            await db.executescript(mf.read_text())
            await db.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            await db.commit()
            current_version = version

    logger.info("Migrations complete (at version %d)", current_version)
    return current_version
