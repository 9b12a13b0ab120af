"""Schema migrations bundled as vNNN_name.sql files."""

from src.infrastructure.storage.sqlite.migrations.migrator import (
    MigrationInfo,
    MigrationResult,
    discover_migrations,
    run_migrations,
)

__all__ = ["MigrationInfo", "MigrationResult", "discover_migrations", "run_migrations"]
