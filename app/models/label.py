"""Pydantic models for label entries and label set configuration."""

import uuid
from typing import Literal

from pydantic import BaseModel, Field, model_validator

ChoiceMode = Literal["single", "multiple"]

# Background of the "no label" sentinel chip.
EMPTY_LABEL_BACKGROUND = "#36B37E"


def _guid() -> str:
    return uuid.uuid4().hex[:10]


class LabelEntry(BaseModel):
    """A single selectable label owned by a label set.

    ``value is None`` is reserved for the empty sentinel.  ``parent`` is
    the owning label set's name and is only ever used as a lookup key.
    """

    id: str | int = Field(default_factory=_guid)
    value: str | None = None
    alias: str | None = None
    show_alias: bool = False
    background: str | None = None
    fill_color: str | None = None
    stroke_color: str | None = None
    stroke_width: float | None = None
    opacity: float | None = None
    is_empty: bool = False
    parent: str | None = None

    @model_validator(mode="after")
    def _check_sentinel(self) -> "LabelEntry":
        if self.is_empty and self.value is not None:
            raise ValueError("the empty sentinel label cannot carry a value")
        if not self.is_empty and self.value is None:
            raise ValueError("only the empty sentinel label may have a null value")
        return self

    @property
    def normalized_value(self) -> str | None:
        """Lower-cased value used for case-insensitive matching."""
        return self.value.lower() if self.value is not None else None


class LabelOption(BaseModel):
    """Candidate label offered by the option catalog."""

    id: str | int
    value: str


class LabelSetConfig(BaseModel):
    """Declarative attributes of a ``<Labels>`` tag."""

    name: str
    to_name: str
    choice: ChoiceMode = "single"
    max_usages: int | None = None
    show_inline: bool = True
    opacity: float = 0.2
    fill_color: str = "#f48a42"
    stroke_color: str = "#f48a42"
    stroke_width: float = 1
    fill_opacity: float | None = None
    value: str = ""  # Task data field path, e.g. "$brands"
    allow_empty: bool = False
    children: list[LabelEntry] = Field(default_factory=list)


class LabelSetResponse(BaseModel):
    """Label set returned by the API."""

    name: str
    to_name: str
    choice: ChoiceMode
    allow_empty: bool
    show_inline: bool
    max_usages: int | None = None
    dynamic: bool
    children: list[LabelEntry]
    last_error: str | None = None


class TaskDataUpdate(BaseModel):
    """Request body for PUT /labels/task -- per-task data for dynamic labels."""

    data: dict
