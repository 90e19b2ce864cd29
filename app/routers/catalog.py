"""Built-in option catalog router.

Endpoints:
- GET /catalog/options  -- the default candidate label list
"""

from __future__ import annotations

from fastapi import APIRouter

from app.models.label import LabelOption
from app.services.option_catalog import DEFAULT_OPTIONS

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/options", response_model=list[LabelOption])
def list_options() -> list[LabelOption]:
    """Return the built-in catalog, usable as ``LABELSET_CATALOG_URL``."""
    return [LabelOption(**o) for o in DEFAULT_OPTIONS]
