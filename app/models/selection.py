"""Pydantic models for the option catalog and the selection dialog."""

from typing import Literal

from pydantic import BaseModel, Field

from app.models.label import LabelOption

CatalogStatus = Literal["idle", "loading", "ready", "error"]
DialogState = Literal["closed", "open"]


class CatalogState(BaseModel):
    """Snapshot of the option catalog fetch lifecycle."""

    status: CatalogStatus = "idle"
    options: list[LabelOption] = Field(default_factory=list)
    error_message: str | None = None
    request_id: int = 0


class SelectionState(BaseModel):
    """Snapshot of the selection dialog, as rendered by the frontend."""

    state: DialogState = "closed"
    pending: list[str] = Field(default_factory=list)
    can_confirm: bool = False
    confirming: bool = False
    error_message: str | None = None
    dropped_keys: list[str] = Field(default_factory=list)
    catalog: CatalogState = Field(default_factory=CatalogState)


class SelectionChange(BaseModel):
    """Request body for PUT /labels/selection -- replace the pending keys."""

    keys: list[str]


class ConfirmResponse(BaseModel):
    """Result of POST /labels/selection/confirm."""

    applied: bool
    selection: SelectionState


class ConfigDocumentResponse(BaseModel):
    """Current stored configuration document."""

    project_id: str
    document: str
    revision: int = 0
