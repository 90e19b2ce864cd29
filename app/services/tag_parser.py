"""Parser for the declarative ``<Labels>`` tag configuration.

Accepts either a bare ``<Labels>`` element or a full ``<View>`` document
containing one, and produces a :class:`LabelSetConfig`.  Attribute names
are matched case-insensitively (``toName`` and ``toname`` are the same
attribute) because configuration documents are hand-written.
"""

from __future__ import annotations

import logging

from lxml import etree
from pydantic import ValidationError

from app.exceptions import ConfigError
from app.models.label import LabelEntry, LabelSetConfig

logger = logging.getLogger(__name__)

LABELS_TAG = "labels"
LABEL_TAG = "label"

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}

# Declarative attribute (lower-cased) -> LabelSetConfig field
_SET_ATTRS: dict[str, str] = {
    "name": "name",
    "toname": "to_name",
    "choice": "choice",
    "maxusages": "max_usages",
    "showinline": "show_inline",
    "opacity": "opacity",
    "fillcolor": "fill_color",
    "strokecolor": "stroke_color",
    "strokewidth": "stroke_width",
    "fillopacity": "fill_opacity",
    "value": "value",
    "allowempty": "allow_empty",
}

# Declarative attribute (lower-cased) -> LabelEntry field
_LABEL_ATTRS: dict[str, str] = {
    "key": "id",
    "id": "id",
    "value": "value",
    "alias": "alias",
    "showalias": "show_alias",
    "background": "background",
    "fillcolor": "fill_color",
    "strokecolor": "stroke_color",
    "strokewidth": "stroke_width",
    "opacity": "opacity",
}

_BOOL_FIELDS = {"show_inline", "allow_empty", "show_alias"}


def parse_bool(raw: str | bool) -> bool:
    """Interpret a declarative boolean attribute."""
    if isinstance(raw, bool):
        return raw
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Expected a boolean attribute value, got {raw!r}")


def parse_markup(markup: str) -> etree._Element:
    """Parse *markup* as well-formed XML and return the root element.

    Raises :class:`lxml.etree.XMLSyntaxError` on malformed input.
    """
    return etree.fromstring(markup.strip().encode("utf-8"))


def find_labels_element(root: etree._Element) -> etree._Element | None:
    """Return the first ``<Labels>`` element at or below *root*."""
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.lower() == LABELS_TAG:
            return element
    return None


def _collect(element: etree._Element, mapping: dict[str, str]) -> dict:
    fields: dict = {}
    for attr, raw in element.attrib.items():
        field = mapping.get(attr.lower())
        if field is None:
            continue
        fields[field] = parse_bool(raw) if field in _BOOL_FIELDS else raw
    return fields


def parse_label_element(element: etree._Element, parent: str | None = None) -> LabelEntry:
    """Build a :class:`LabelEntry` from a ``<Label>`` element."""
    fields = _collect(element, _LABEL_ATTRS)
    if not fields.get("value"):
        raise ConfigError("<Label> declarations require a value attribute")
    try:
        return LabelEntry(parent=parent, **fields)
    except ValidationError as e:
        raise ConfigError(f"Invalid <Label> declaration: {e}") from e


def parse_labels_tag(markup: str) -> LabelSetConfig:
    """Parse a ``<Labels>`` tag (or a document containing one).

    Raises :class:`ConfigError` when the markup is malformed, the tag is
    missing, or required attributes (``name``, ``toName``) are absent.
    """
    try:
        root = parse_markup(markup)
    except etree.XMLSyntaxError as e:
        raise ConfigError(f"Configuration is not well-formed: {e}") from e

    element = find_labels_element(root)
    if element is None:
        raise ConfigError("Configuration does not declare a <Labels> tag")

    fields = _collect(element, _SET_ATTRS)
    for required in ("name", "to_name"):
        if not fields.get(required):
            raise ConfigError(f"<Labels> is missing the required {required!r} attribute")

    children = [
        parse_label_element(child, parent=fields["name"])
        for child in element
        if isinstance(child.tag, str) and child.tag.lower() == LABEL_TAG
    ]

    try:
        config = LabelSetConfig(children=children, **fields)
    except ValidationError as e:
        raise ConfigError(f"Invalid <Labels> attributes: {e}") from e

    logger.debug(
        "Parsed <Labels name=%s> with %d static children", config.name, len(children)
    )
    return config
