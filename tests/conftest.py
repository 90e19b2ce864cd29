"""Shared pytest fixtures for label set service tests."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from app.models.label import LabelSetConfig
from app.repositories.config_repository import ConfigRepository
from app.repositories.duckdb_repo import DuckDBRepo
from app.routers import catalog, labels
from app.services.config_sync import ConfigSynchronizer
from app.services.label_set import LabelSet
from app.services.option_catalog import OptionCatalog
from app.services.selection_controller import SelectionController
from app.services.session import LabelingSession
from tests.fakes import CATALOG, MemoryStore, ScriptedCatalogSource

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def tmp_db_path(tmp_path: Path) -> Path:
    """Return a temporary DuckDB file path."""
    return tmp_path / "test.duckdb"


@pytest.fixture()
def db(tmp_db_path: Path) -> DuckDBRepo:
    """Create a DuckDBRepo with a temporary database, initialize schema, then close."""
    repo = DuckDBRepo(tmp_db_path)
    repo.initialize_schema()
    yield repo
    repo.close()


@pytest.fixture()
def repository(db: DuckDBRepo) -> ConfigRepository:
    return ConfigRepository(db, "test-project")


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def synchronizer(store: MemoryStore) -> ConfigSynchronizer:
    return ConfigSynchronizer(store)


@pytest.fixture()
def label_set() -> LabelSet:
    """Static multiple-choice label set with no labels yet."""
    ls = LabelSet(LabelSetConfig(name="tricks", to_name="audio", choice="multiple"))
    ls.initialize()
    return ls


@pytest.fixture()
def controller(
    label_set: LabelSet, synchronizer: ConfigSynchronizer, store: MemoryStore
) -> SelectionController:
    catalog_ = OptionCatalog(ScriptedCatalogSource(CATALOG))
    return SelectionController(
        label_set, catalog_, synchronizer, document_provider=lambda: store.document
    )


@pytest.fixture()
def session(repository: ConfigRepository) -> LabelingSession:
    return LabelingSession(
        project_id="test-project",
        synchronizer=ConfigSynchronizer(repository),
        catalog_source=ScriptedCatalogSource(CATALOG),
        repository=repository,
    )


@pytest.fixture()
async def app_client(session: LabelingSession, db: DuckDBRepo) -> httpx.AsyncClient:
    """Create a FastAPI test app around the session and yield an async HTTP client."""
    test_app = FastAPI()
    test_app.state.db = db
    test_app.state.session = session
    test_app.include_router(labels.router)
    test_app.include_router(catalog.router)

    @test_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=test_app),
        base_url="http://testserver",
    ) as client:
        yield client
