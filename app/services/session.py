"""Labeling session: wires the label set, catalog, synchronizer and controller.

The session owns the configuration document of one project.  At startup
the stored document (or the template rendered with no labels) is parsed
for its ``<Labels>`` tag, and that tag initializes the label set.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from app.config import Settings
from app.exceptions import ConfigError
from app.models.label import LabelSetConfig
from app.repositories.config_repository import ConfigRepository
from app.repositories.duckdb_repo import DuckDBRepo
from app.repositories.http_config_store import HttpConfigStore
from app.repositories.storage import StorageBackend
from app.services.config_sync import DEFAULT_TEMPLATE, ConfigStore, ConfigSynchronizer
from app.services.label_set import LabelSet
from app.services.option_catalog import (
    CatalogSource,
    HttpCatalogSource,
    OptionCatalog,
    StaticCatalogSource,
)
from app.services.selection_controller import SelectionController
from app.services.tag_parser import parse_labels_tag

logger = logging.getLogger(__name__)


class LabelingSession:
    """One project's label set and its selection workflow."""

    def __init__(
        self,
        *,
        project_id: str,
        synchronizer: ConfigSynchronizer,
        catalog_source: CatalogSource,
        repository: ConfigRepository | None = None,
        task_data: Mapping[str, Any] | None = None,
    ) -> None:
        self.project_id = project_id
        self.synchronizer = synchronizer
        self.repository = repository
        self.revision = 0
        self.document = ""
        self._load_document()

        self.label_set = LabelSet(self._label_set_config(self.document))
        self.label_set.initialize(task_data)

        self.catalog = OptionCatalog(catalog_source)
        self.controller = SelectionController(
            self.label_set,
            self.catalog,
            synchronizer,
            document_provider=lambda: self.document,
            on_persisted=self._remember,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, db: DuckDBRepo, storage: StorageBackend
    ) -> LabelingSession:
        """Build a session from application settings."""
        template = DEFAULT_TEMPLATE
        if settings.template_path:
            template = storage.read_text(settings.template_path)
            logger.info("Loaded document template from %s", settings.template_path)

        repository: ConfigRepository | None = ConfigRepository(db, settings.project_id)
        store: ConfigStore = repository
        if settings.store_url:
            # The remote store owns the document; nothing is read back locally.
            store = HttpConfigStore(
                settings.store_url, settings.project_id, timeout=settings.catalog_timeout
            )
            repository = None

        source: CatalogSource = StaticCatalogSource()
        if settings.catalog_url:
            source = HttpCatalogSource(settings.catalog_url, timeout=settings.catalog_timeout)

        synchronizer = ConfigSynchronizer(
            store,
            template=template,
            name=settings.labels_name,
            to_name=settings.labels_to_name,
            choice=settings.labels_choice,
        )
        return cls(
            project_id=settings.project_id,
            synchronizer=synchronizer,
            catalog_source=source,
            repository=repository,
        )

    def _load_document(self) -> None:
        if self.repository is not None:
            stored = self.repository.load_sync()
            if stored is not None:
                self.document, self.revision = stored
                return
        self.document = self.synchronizer.build_document(self.synchronizer.build_fragment([]))

    def _label_set_config(self, document: str) -> LabelSetConfig:
        try:
            return parse_labels_tag(document)
        except ConfigError as e:
            logger.warning("Stored configuration unusable (%s); starting empty", e)
            attrs = self.synchronizer.tag_attrs
            return LabelSetConfig(
                name=attrs["name"], to_name=attrs["toName"], choice=attrs["choice"]
            )

    async def current_document(self) -> str:
        """Re-read and return the latest persisted document for this project.

        The controller seeds from :attr:`document`, so callers refresh it
        here before opening the dialog.
        """
        if self.repository is not None:
            stored = await self.repository.load()
            if stored is not None:
                self.document, self.revision = stored
        return self.document

    def _remember(self, document: str) -> None:
        self.document = document
