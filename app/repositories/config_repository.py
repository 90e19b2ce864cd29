"""DuckDB-backed store for label configuration documents."""

from __future__ import annotations

import asyncio
import logging

from app.repositories.duckdb_repo import DuckDBRepo

logger = logging.getLogger(__name__)


class ConfigRepository:
    """Stores one configuration document per project.

    Saving a document identical to the stored one is a no-op, so
    repeated saves leave the revision unchanged.
    """

    def __init__(self, db: DuckDBRepo, project_id: str) -> None:
        self.db = db
        self.project_id = project_id

    def load_sync(self) -> tuple[str, int] | None:
        """Return ``(document, revision)`` for the project, or ``None``."""
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "SELECT document, revision FROM label_configs WHERE project_id = ?",
                [self.project_id],
            ).fetchone()
        finally:
            cursor.close()
        return (row[0], row[1]) if row is not None else None

    def save_sync(self, document: str) -> bool:
        """Write *document*; returns ``True`` once it is stored."""
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "SELECT document FROM label_configs WHERE project_id = ?",
                [self.project_id],
            ).fetchone()
            if row is None:
                cursor.execute(
                    "INSERT INTO label_configs (project_id, document, revision) "
                    "VALUES (?, ?, 1)",
                    [self.project_id, document],
                )
            elif row[0] != document:
                cursor.execute(
                    "UPDATE label_configs "
                    "SET document = ?, revision = revision + 1, updated_at = current_timestamp "
                    "WHERE project_id = ?",
                    [document, self.project_id],
                )
            else:
                logger.debug("Configuration for %s unchanged; skipping write", self.project_id)
        finally:
            cursor.close()
        return True

    async def load(self) -> tuple[str, int] | None:
        return await asyncio.to_thread(self.load_sync)

    async def save(self, document: str) -> bool:
        return await asyncio.to_thread(self.save_sync, document)
