"""DuckDB connection wrapper with schema initialization."""

from pathlib import Path

import duckdb


class DuckDBRepo:
    """Manages a DuckDB connection and schema lifecycle.

    Opens a single persistent connection at startup.  Callers obtain
    cursors via ``connection.cursor()`` so each call has its own cursor.
    """

    def __init__(self, db_path: str | Path) -> None:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection: duckdb.DuckDBPyConnection = duckdb.connect(str(db_path))

    def initialize_schema(self) -> None:
        """Create the configuration table if it does not already exist.

        No PRIMARY KEY constraint: there is one row per project and writes
        go through :class:`ConfigRepository`, which updates in place.
        """
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS label_configs (
                project_id      VARCHAR NOT NULL,
                document        VARCHAR NOT NULL,
                revision        INTEGER DEFAULT 1,
                updated_at      TIMESTAMP DEFAULT current_timestamp
            )
        """)

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self.connection.close()
