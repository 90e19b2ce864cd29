"""Conversion between a label set's children and its textual configuration.

The synchronizer renders the ``<Labels>`` fragment for a list of entries,
embeds it into a document template, reads label values back out of an
existing document, and hands finished documents to a configuration store.
The empty sentinel is runtime-only and never reaches a document.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import duckdb
import httpx
from lxml import etree

from app.exceptions import ConfigError, ParseError, PersistError
from app.models.label import LabelEntry
from app.services.tag_parser import find_labels_element, parse_markup

logger = logging.getLogger(__name__)

FRAGMENT_PLACEHOLDER = "<!-- labels -->"

DEFAULT_TEMPLATE = f"""<View>
  <Header value="Video timeline segmentation via Audio sync trick"/>
  <Video name="video" value="$video" sync="audio"></Video>
  {FRAGMENT_PLACEHOLDER}
  <Audio name="audio" value="$video" sync="video" zoom="true" speed="true" volume="true"/>
</View>
"""


class ConfigStore(Protocol):
    """Destination for regenerated configuration documents."""

    async def save(self, document: str) -> bool: ...


class ConfigSynchronizer:
    """Builds, reads back, and persists label set configuration documents."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        template: str = DEFAULT_TEMPLATE,
        name: str = "tricks",
        to_name: str = "audio",
        choice: str = "multiple",
    ) -> None:
        if FRAGMENT_PLACEHOLDER not in template:
            raise ConfigError(
                f"Document template must contain the {FRAGMENT_PLACEHOLDER} placeholder"
            )
        self.store = store
        self.template = template
        self.tag_attrs = {"name": name, "toName": to_name, "choice": choice}

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def build_fragment(self, entries: Sequence[LabelEntry]) -> str:
        """Render the ``<Labels>`` tag with one ``<Label>`` per entry, in order.

        Raises :class:`ConfigError` if a value cannot be written as XML
        (control characters, NUL bytes).
        """
        labels = etree.Element("Labels")
        for attr, value in self.tag_attrs.items():
            labels.set(attr, value)
        for entry in entries:
            if entry.is_empty:
                continue
            try:
                child = etree.SubElement(labels, "Label", key=str(entry.id), value=entry.value)
                if entry.alias:
                    child.set("alias", entry.alias)
                    if entry.show_alias:
                        child.set("showAlias", "true")
                if entry.background:
                    child.set("background", entry.background)
            except ValueError as e:
                raise ConfigError(
                    f"Label {entry.value!r} cannot be written to the configuration: {e}"
                ) from e
        return etree.tostring(labels, encoding="unicode", pretty_print=True).strip()

    def build_document(self, fragment: str) -> str:
        """Embed *fragment* into the document template."""
        return self.template.replace(FRAGMENT_PLACEHOLDER, fragment, 1)

    # ------------------------------------------------------------------
    # Read-back
    # ------------------------------------------------------------------

    def _labels_values(self, document: str) -> list[str]:
        try:
            root = parse_markup(document)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise ParseError(f"Configuration document is not well-formed: {e}") from e

        labels = find_labels_element(root)
        if labels is None:
            raise ParseError("Labels node not found in the configuration document")

        values: list[str] = []
        for child in labels:
            if not isinstance(child.tag, str):
                continue  # comments, processing instructions
            value = child.get("value")
            if value:
                values.append(value.lower())
        return values

    def extract_existing_values(self, document: str | None) -> list[str]:
        """Return the lower-cased values declared under the ``<Labels>`` tag.

        Unparsable documents and documents without the tag yield ``[]``.
        """
        if not document:
            return []
        try:
            return self._labels_values(document)
        except ParseError as e:
            logger.error("Could not read existing labels: %s", e)
            return []

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(self, document: str) -> bool:
        """Save *document* via the store.

        Raises :class:`PersistError` if the store rejects the document or
        fails.
        """
        try:
            saved = await self.store.save(document)
        except PersistError:
            raise
        except (httpx.HTTPError, duckdb.Error, OSError) as e:
            raise PersistError(f"Could not save configuration: {e}") from e
        if not saved:
            raise PersistError("Configuration store rejected the document")
        logger.info("Persisted configuration document (%d chars)", len(document))
        return True
