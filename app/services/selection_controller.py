"""Selection dialog controller: catalog fetch, pending selection, confirm.

States are ``closed`` and ``open``; while open, the catalog status
(loading/ready/error) decides which actions are enabled.  Confirm runs
OptionCatalog -> ConfigSynchronizer -> LabelSet in that order and only
touches the label set after the new document has been persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from app.exceptions import ConfigError, PersistError
from app.models.label import LabelEntry
from app.models.selection import CatalogState, DialogState, SelectionState
from app.services.config_sync import ConfigSynchronizer
from app.services.label_set import LabelSet
from app.services.option_catalog import OptionCatalog

logger = logging.getLogger(__name__)

DocumentProvider = Callable[[], str | None]


def normalize_keys(keys: Iterable[str]) -> list[str]:
    """Lower-case and de-duplicate *keys*, keeping first-seen order."""
    seen: dict[str, None] = {}
    for key in keys:
        normalized = key.strip().lower()
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


class SelectionController:
    """Drives the "add labels" dialog for one label set."""

    def __init__(
        self,
        label_set: LabelSet,
        catalog: OptionCatalog,
        synchronizer: ConfigSynchronizer,
        document_provider: DocumentProvider | None = None,
        on_persisted: Callable[[str], None] | None = None,
    ) -> None:
        self.label_set = label_set
        self.catalog = catalog
        self.synchronizer = synchronizer
        self._document_provider = document_provider or (lambda: None)
        self._on_persisted = on_persisted
        self.state: DialogState = "closed"
        self.pending: list[str] = []
        self.error_message: str | None = None
        self.dropped_keys: list[str] = []
        self.confirming = False

    # ------------------------------------------------------------------
    # Derived flags
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def can_confirm(self) -> bool:
        return (
            self.is_open
            and not self.confirming
            and self.catalog.status not in ("loading", "error")
        )

    @property
    def can_refresh(self) -> bool:
        return self.is_open and not self.catalog.is_loading

    def snapshot(self) -> SelectionState:
        return SelectionState(
            state=self.state,
            pending=list(self.pending),
            can_confirm=self.can_confirm,
            confirming=self.confirming,
            error_message=self.error_message,
            dropped_keys=list(self.dropped_keys),
            catalog=self.catalog.snapshot(),
        )

    async def _current_catalog(self) -> CatalogState:
        return self.catalog.snapshot()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def open(self) -> Awaitable[CatalogState]:
        """Open the dialog, seed the pending selection, and fetch the catalog."""
        if self.is_open:
            logger.debug("Selection dialog already open; refreshing instead")
            return self.refresh()

        self.state = "open"
        self.error_message = None
        self.dropped_keys = []
        current = self.label_set.labels
        if current:
            self.pending = normalize_keys(e.value for e in current)
        else:
            document = self._document_provider()
            self.pending = self.synchronizer.extract_existing_values(document)
        logger.info(
            "Opened label selection for %s with %d preselected keys",
            self.label_set.name,
            len(self.pending),
        )
        return self.catalog.fetch()

    def change_selection(self, keys: Iterable[str]) -> bool:
        """Replace the pending selection; ignored unless the dialog is open."""
        if not self.is_open:
            logger.debug("Ignoring selection change while dialog is %s", self.state)
            return False
        self.pending = normalize_keys(keys)
        return True

    def refresh(self) -> Awaitable[CatalogState]:
        """Re-fetch the catalog; disabled while a fetch is in flight."""
        if not self.can_refresh:
            logger.debug("Refresh ignored (state=%s, catalog=%s)", self.state, self.catalog.status)
            return self._current_catalog()
        return self.catalog.fetch()

    def resolve(self, keys: Iterable[str]) -> list[LabelEntry]:
        """Map normalized keys to catalog entries; unmatched keys are dropped."""
        options = self.catalog.options
        entries: list[LabelEntry] = []
        dropped: list[str] = []
        for key in keys:
            match = next((o for o in options if o.value.lower() == key), None)
            if match is None:
                dropped.append(key)
                continue
            entries.append(LabelEntry(id=match.id, value=match.value))
        if dropped:
            logger.debug("Dropping keys absent from the catalog: %s", ", ".join(dropped))
        self.dropped_keys = dropped
        return entries

    async def confirm(self) -> bool:
        """Persist the pending selection, then apply it to the label set.

        Returns ``True`` if the selection was applied.  If the document
        cannot be built or persisted, the dialog stays open with
        :attr:`error_message` set and the label set is left untouched.
        """
        if not self.can_confirm:
            logger.debug("Confirm ignored (state=%s, catalog=%s)", self.state, self.catalog.status)
            return False

        entries = self.resolve(self.pending)
        self.confirming = True
        self.error_message = None
        try:
            fragment = self.synchronizer.build_fragment(entries)
            document = self.synchronizer.build_document(fragment)
            await self.synchronizer.persist(document)
        except (ConfigError, PersistError) as e:
            logger.warning("Label selection not applied: %s", e)
            self.error_message = str(e)
            return False
        finally:
            self.confirming = False

        if self._on_persisted is not None:
            self._on_persisted(document)
        self.label_set.replace_children(entries)
        self._close()
        logger.info("Applied %d labels to %s", len(entries), self.label_set.name)
        return True

    def discard(self) -> bool:
        """Close the dialog without changing anything."""
        if not self.is_open or self.confirming:
            return False
        self._close()
        return True

    def _close(self) -> None:
        self.state = "closed"
        self.pending = []
        self.error_message = None
