"""Label set service FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.repositories.duckdb_repo import DuckDBRepo
from app.repositories.storage import StorageBackend
from app.services.session import LabelingSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown.

    On startup:
    - Create DuckDB connection and initialize schema.
    - Create StorageBackend for template loading.
    - Build the LabelingSession from the stored configuration document.
    - Store all services on app.state for dependency injection.

    On shutdown:
    - Close DuckDB connection.
    """
    settings = get_settings()

    # Database
    db = DuckDBRepo(settings.db_path)
    db.initialize_schema()
    app.state.db = db

    # Storage
    storage = StorageBackend()
    app.state.storage = storage

    # Labeling session (label set, catalog, synchronizer, controller)
    session = LabelingSession.from_settings(settings, db, storage)
    logger.info(
        "Label set %s ready with %d labels",
        session.label_set.name,
        len(session.label_set.labels),
    )
    app.state.session = session

    yield

    # Shutdown
    db.connection.execute("CHECKPOINT")  # Flush WAL to disk before container stops
    db.close()


app = FastAPI(
    title="Label Set Service",
    description="Configurable label set with catalog-driven label selection",
    version="0.1.0",
    lifespan=lifespan,
)

# In Docker with a reverse proxy (same origin): no CORS needed.
# In local dev: allow the frontend dev server origin.
settings = get_settings()
if not settings.behind_proxy:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Router includes
from app.routers import catalog, labels  # noqa: E402

app.include_router(labels.router)
app.include_router(catalog.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}
