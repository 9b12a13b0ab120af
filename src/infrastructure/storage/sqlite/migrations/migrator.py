"""
Versioned schema migrations for the pulse database.

Migration files are named vNNN_name.sql and applied in version order.
Applied versions and their checksums are tracked in schema_migrations;
a changed checksum on an applied version is reported, never re-applied.
"""

import hashlib
import re
import time
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from src.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"^v(\d+)_(\w+)\.sql$")

_TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT,
    applied_at TEXT DEFAULT (datetime('now')),
    execution_time_ms INTEGER
)
"""


@dataclass(frozen=True)
class MigrationInfo:
    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.match(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()[:16]
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=digest)

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files in `directory`, ordered by version. Bad names are skipped."""
    found: list[MigrationInfo] = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError:
            logger.warning("migration_file_skipped", path=str(path))
    return sorted(found, key=lambda m: int(m.version))


async def _applied_versions(conn: aiosqlite.Connection) -> dict[str, str]:
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    return {version: checksum for version, checksum in await cursor.fetchall()}


async def _apply(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    started = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        await conn.executescript(migration.read_sql())
        await conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, execution_time_ms) "
            "VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed_ms()),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(migration.version, migration.name, False, elapsed_ms(), str(e))

    logger.info(
        "migration_applied",
        version=migration.version,
        name=migration.name,
        execution_time_ms=elapsed_ms(),
    )
    return MigrationResult(migration.version, migration.name, True, elapsed_ms())


async def run_migrations(
    db_path: Path | None = None,
    directory: Path = MIGRATIONS_DIR,
) -> list[MigrationResult]:
    """
    Apply pending migrations, stopping at the first failure.

    Args:
        db_path: Database file (default from StorageSettings)
        directory: Where the vNNN_*.sql files live

    Returns:
        One result per migration attempted in this run
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    results: list[MigrationResult] = []
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute(_TRACKING_TABLE)
        await conn.commit()
        applied = await _applied_versions(conn)

        for migration in discover_migrations(directory):
            known = applied.get(migration.version)
            if known is not None:
                if known != migration.checksum:
                    logger.warning(
                        "migration_checksum_changed",
                        version=migration.version,
                        name=migration.name,
                    )
                continue

            result = await _apply(conn, migration)
            results.append(result)
            if not result.success:
                break

    logger.info("migrations_complete", db_path=str(db_path), applied=len(results))
    return results
