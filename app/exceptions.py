"""Error kinds raised by the label set components.

None of these is fatal to a labeling session: each is either recovered
where it is raised or converted into a state field that the UI renders.
"""


class LabelSetError(Exception):
    """Base class for all label set errors."""


class ConfigError(LabelSetError):
    """Declarative configuration or dynamic task data is malformed."""


class ParseError(LabelSetError):
    """A configuration document could not be parsed or lacks a Labels tag."""


class CatalogFetchError(LabelSetError):
    """The option catalog could not be fetched or was malformed."""


class PersistError(LabelSetError):
    """The regenerated configuration document could not be saved."""
