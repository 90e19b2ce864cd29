"""Label set service configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Label set service settings.

    All fields can be overridden via environment variables with
    the LABELSET_ prefix (e.g., LABELSET_CATALOG_URL).
    """

    db_path: Path = Path("data/labelset.duckdb")
    project_id: str = "default"
    catalog_url: str | None = None  # None serves the built-in catalog
    catalog_timeout: float = 10.0
    store_url: str | None = None  # None persists to DuckDB
    template_path: str | None = None  # local path or gs:// URI
    labels_name: str = "tricks"
    labels_to_name: str = "audio"
    labels_choice: str = "multiple"
    host: str = "0.0.0.0"
    port: int = 8000
    behind_proxy: bool = False

    model_config = {
        "env_prefix": "LABELSET_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
