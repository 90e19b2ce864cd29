"""Label set and selection dialog router.

Endpoints:
- GET  /labels                      -- label set attributes and children
- PUT  /labels/task                 -- apply task data (dynamic labels)
- GET  /labels/config               -- current configuration document
- GET  /labels/selection            -- selection dialog state
- POST /labels/selection/open       -- open the dialog and fetch the catalog
- PUT  /labels/selection            -- replace the pending selection
- POST /labels/selection/refresh    -- re-fetch the catalog
- POST /labels/selection/confirm    -- persist and apply the selection
- POST /labels/selection/discard    -- close the dialog without changes

All handlers are ``async def`` so session state is only ever touched from
the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_controller, get_label_set, get_session
from app.models.label import LabelSetResponse, TaskDataUpdate
from app.models.selection import (
    ConfigDocumentResponse,
    ConfirmResponse,
    SelectionChange,
    SelectionState,
)
from app.services.label_set import LabelSet
from app.services.selection_controller import SelectionController
from app.services.session import LabelingSession

router = APIRouter(prefix="/labels", tags=["labels"])


def _label_set_response(label_set: LabelSet) -> LabelSetResponse:
    config = label_set.config
    return LabelSetResponse(
        name=config.name,
        to_name=config.to_name,
        choice=label_set.selection_mode,
        allow_empty=config.allow_empty,
        show_inline=config.show_inline,
        max_usages=config.max_usages,
        dynamic=label_set.dynamic.enabled,
        children=list(label_set.children),
        last_error=str(label_set.last_error) if label_set.last_error else None,
    )


@router.get("", response_model=LabelSetResponse)
async def get_labels(
    label_set: LabelSet = Depends(get_label_set),
) -> LabelSetResponse:
    """Return the label set and its current children."""
    return _label_set_response(label_set)


@router.put("/task", response_model=LabelSetResponse)
async def update_task_data(
    body: TaskDataUpdate,
    label_set: LabelSet = Depends(get_label_set),
) -> LabelSetResponse:
    """Re-derive dynamic labels from new task data."""
    label_set.update_task_data(body.data)
    return _label_set_response(label_set)


@router.get("/config", response_model=ConfigDocumentResponse)
async def get_config(
    session: LabelingSession = Depends(get_session),
) -> ConfigDocumentResponse:
    """Return the latest persisted configuration document."""
    document = await session.current_document()
    return ConfigDocumentResponse(
        project_id=session.project_id,
        document=document,
        revision=session.revision,
    )


@router.get("/selection", response_model=SelectionState)
async def get_selection(
    controller: SelectionController = Depends(get_controller),
) -> SelectionState:
    """Return the selection dialog state."""
    return controller.snapshot()


@router.post("/selection/open", response_model=SelectionState)
async def open_selection(
    session: LabelingSession = Depends(get_session),
    controller: SelectionController = Depends(get_controller),
) -> SelectionState:
    """Open the dialog and wait for the catalog fetch to settle."""
    if not controller.is_open:
        await session.current_document()
    await controller.open()
    return controller.snapshot()


@router.put("/selection", response_model=SelectionState)
async def change_selection(
    body: SelectionChange,
    controller: SelectionController = Depends(get_controller),
) -> SelectionState:
    """Replace the pending selection while the dialog is open."""
    if not controller.change_selection(body.keys):
        raise HTTPException(status_code=409, detail="Selection dialog is not open")
    return controller.snapshot()


@router.post("/selection/refresh", response_model=SelectionState)
async def refresh_selection(
    controller: SelectionController = Depends(get_controller),
) -> SelectionState:
    """Re-fetch the option catalog."""
    if not controller.can_refresh:
        raise HTTPException(
            status_code=409,
            detail="Catalog refresh unavailable (dialog closed or fetch in progress)",
        )
    await controller.refresh()
    return controller.snapshot()


@router.post("/selection/confirm", response_model=ConfirmResponse)
async def confirm_selection(
    controller: SelectionController = Depends(get_controller),
) -> ConfirmResponse:
    """Persist the pending selection and apply it to the label set.

    A persistence failure is reported in ``selection.error_message`` with
    ``applied=false``; the dialog stays open so the user can retry.
    """
    if not controller.can_confirm:
        raise HTTPException(
            status_code=409,
            detail="Selection cannot be applied until the label catalog is loaded",
        )
    applied = await controller.confirm()
    return ConfirmResponse(applied=applied, selection=controller.snapshot())


@router.post("/selection/discard", response_model=SelectionState)
async def discard_selection(
    controller: SelectionController = Depends(get_controller),
) -> SelectionState:
    """Close the dialog without applying the pending selection."""
    if not controller.discard():
        raise HTTPException(status_code=409, detail="Selection dialog is not open or is saving")
    return controller.snapshot()
