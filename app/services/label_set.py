"""Label set node: ordered label children, sentinel invariant, dynamic population.

The label set is assembled from three independently testable capabilities
rather than an inheritance chain:

- :class:`DynamicChildren` derives children from per-task data.
- :class:`EmptySentinel` maintains the "no label" sentinel invariant.
- :class:`SelectionPolicy` exposes the single/multiple selection discipline
  to the region model.

Observers registered with :meth:`LabelSet.subscribe` see every mutation as
one atomic transition.  A mutation requested from inside an observer is
queued and applied after the current notification round completes.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from app.exceptions import ConfigError
from app.models.label import (
    EMPTY_LABEL_BACKGROUND,
    ChoiceMode,
    LabelEntry,
    LabelSetConfig,
)

logger = logging.getLogger(__name__)

Observer = Callable[["LabelSet"], None]

_STYLE_FIELDS = ("fill_color", "stroke_color", "stroke_width", "opacity")


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class DynamicChildren:
    """Derives label entries from a task data field such as ``$brands``."""

    def __init__(self, path: str) -> None:
        self.path = path

    @property
    def enabled(self) -> bool:
        return bool(self.path)

    def _segments(self) -> list[str]:
        return [s for s in self.path.lstrip("$").split(".") if s]

    def resolve(self, task_data: Mapping[str, Any] | None) -> list[LabelEntry]:
        """Return one entry per record of the referenced field, in order.

        Raises :class:`ConfigError` if the field is absent or is not a
        sequence of records each carrying a ``value``.
        """
        node: Any = task_data or {}
        for segment in self._segments():
            if not isinstance(node, Mapping) or segment not in node:
                raise ConfigError(f"Task data has no field {self.path!r}")
            node = node[segment]

        if isinstance(node, (str, bytes)) or not isinstance(node, Sequence):
            raise ConfigError(f"Task data field {self.path!r} is not a list of labels")

        entries: list[LabelEntry] = []
        for index, record in enumerate(node):
            if not isinstance(record, Mapping) or not record.get("value"):
                raise ConfigError(
                    f"Record {index} of {self.path!r} is not a label (missing 'value')"
                )
            try:
                entries.append(LabelEntry(**_record_fields(record)))
            except ValidationError as e:
                raise ConfigError(f"Record {index} of {self.path!r} is invalid: {e}") from e
        return entries


def _record_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    # Task data uses the same attribute spelling as the declarative config.
    aliases = {
        "showalias": "show_alias",
        "fillcolor": "fill_color",
        "strokecolor": "stroke_color",
        "strokewidth": "stroke_width",
        "key": "id",
    }
    fields: dict[str, Any] = {}
    for key, value in record.items():
        name = aliases.get(key.lower(), key)
        if name in LabelEntry.model_fields and name not in ("is_empty", "parent"):
            fields[name] = value
    return fields


class EmptySentinel:
    """Keeps exactly one "no label" entry at the head of the children."""

    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled

    @staticmethod
    def make(parent: str | None = None) -> LabelEntry:
        return LabelEntry(
            value=None, is_empty=True, background=EMPTY_LABEL_BACKGROUND, parent=parent
        )

    def satisfied(self, children: Sequence[LabelEntry]) -> bool:
        sentinels = [c for c in children if c.is_empty]
        if not self.enabled:
            return not sentinels
        return len(sentinels) == 1 and children[0].is_empty

    def apply(self, children: Sequence[LabelEntry], parent: str | None = None) -> list[LabelEntry]:
        """Return *children* with the invariant restored (unchanged if it holds)."""
        if self.satisfied(children):
            return list(children)
        existing = next((c for c in children if c.is_empty), None)
        rest = [c for c in children if not c.is_empty]
        if not self.enabled:
            return rest
        return [existing or self.make(parent), *rest]


class SelectionPolicy:
    """Single/multiple selection discipline consumed by the region model."""

    def __init__(self, choice: ChoiceMode = "single", max_usages: int | None = None) -> None:
        self.choice = choice
        self.max_usages = max_usages

    @property
    def should_be_unselected(self) -> bool:
        """Whether picking a label deselects the region's other labels."""
        return self.choice == "single"

    def apply(self, selected: Sequence[LabelEntry], label: LabelEntry) -> list[LabelEntry]:
        """Return the region's labels after *label* is picked."""
        if self.should_be_unselected:
            return [label]
        if any(s.id == label.id for s in selected):
            return list(selected)
        return [*selected, label]

    def is_exhausted(self, usages: int) -> bool:
        """Advisory ``maxUsages`` check; never enforced by the label set."""
        return self.max_usages is not None and usages >= self.max_usages


# ---------------------------------------------------------------------------
# LabelSet
# ---------------------------------------------------------------------------


class LabelSet:
    """The label set control node.

    Owns an ordered tuple of :class:`LabelEntry` children.  Children refer
    back to the set only through ``parent`` (the set's name).
    """

    def __init__(
        self,
        config: LabelSetConfig,
        *,
        dynamic: DynamicChildren | None = None,
        sentinel: EmptySentinel | None = None,
        policy: SelectionPolicy | None = None,
    ) -> None:
        self.config = config
        self.dynamic = dynamic or DynamicChildren(config.value)
        self.sentinel = sentinel or EmptySentinel(config.allow_empty)
        self.policy = policy or SelectionPolicy(config.choice, config.max_usages)
        self.last_error: ConfigError | None = None
        self.version = 0
        self._children: tuple[LabelEntry, ...] = ()
        self._observers: list[Observer] = []
        self._queue: deque[list[LabelEntry]] = deque()
        self._mutating = False

    # -- read access ---------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def children(self) -> tuple[LabelEntry, ...]:
        return self._children

    @property
    def labels(self) -> list[LabelEntry]:
        """Children without the empty sentinel."""
        return [c for c in self._children if not c.is_empty]

    @property
    def selection_mode(self) -> ChoiceMode:
        return self.policy.choice

    @property
    def should_be_unselected(self) -> bool:
        return self.policy.should_be_unselected

    def find_label(self, value: str | None) -> LabelEntry | None:
        """Find a child by value; ``None`` finds the empty sentinel."""
        if value is None:
            return next((c for c in self._children if c.is_empty), None)
        wanted = value.lower()
        return next((c for c in self._children if c.normalized_value == wanted), None)

    # -- observers -----------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register *observer*; returns a callable that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self)

    # -- mutation ------------------------------------------------------

    def _adopt(self, entry: LabelEntry) -> LabelEntry:
        """Fill styling defaults from the set and point the entry at it."""
        updates: dict[str, Any] = {"parent": self.name}
        for field in _STYLE_FIELDS:
            if getattr(entry, field) is None:
                updates[field] = getattr(self.config, field)
        return entry.model_copy(update=updates)

    def initialize(self, task_data: Mapping[str, Any] | None = None) -> None:
        """Build children from static config or, when set, the dynamic path.

        A bad dynamic field is recorded in :attr:`last_error` and leaves the
        set with no labels (plus the sentinel, if allowed).
        """
        if self.dynamic.enabled:
            entries = self._derive(task_data)
        else:
            entries = list(self.config.children)
        self.replace_children(entries)

    def update_task_data(self, task_data: Mapping[str, Any] | None) -> None:
        """Re-derive dynamic children for new task data."""
        if not self.dynamic.enabled:
            logger.debug("Label set %s is static; ignoring task data", self.name)
            return
        self.replace_children(self._derive(task_data))

    def _derive(self, task_data: Mapping[str, Any] | None) -> list[LabelEntry]:
        try:
            entries = self.dynamic.resolve(task_data)
        except ConfigError as e:
            logger.warning("Label set %s: %s; falling back to no labels", self.name, e)
            self.last_error = e
            return []
        self.last_error = None
        return entries

    def apply_sentinel(self) -> bool:
        """Restore the empty-sentinel invariant.  Returns whether anything changed."""
        if self.sentinel.satisfied(self._children):
            return False
        self.replace_children(self._children)
        return True

    def replace_children(self, entries: Iterable[LabelEntry]) -> None:
        """Swap the entire child collection and notify observers once.

        Calls made while observers are being notified are deferred until
        the current round finishes.
        """
        self._queue.append(list(entries))
        if self._mutating:
            logger.debug("Deferring re-entrant mutation of label set %s", self.name)
            return

        self._mutating = True
        try:
            while self._queue:
                adopted = [self._adopt(e) for e in self._queue.popleft()]
                self._children = tuple(self.sentinel.apply(adopted, parent=self.name))
                self.version += 1
                self._notify()
        finally:
            self._mutating = False
            self._queue.clear()
