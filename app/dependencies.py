"""FastAPI dependency injection for the labeling session and its collaborators."""

from fastapi import Depends, Request

from app.services.label_set import LabelSet
from app.services.selection_controller import SelectionController
from app.services.session import LabelingSession


def get_session(request: Request) -> LabelingSession:
    """Return the application-wide LabelingSession stored on app.state."""
    return request.app.state.session


def get_label_set(session: LabelingSession = Depends(get_session)) -> LabelSet:
    """Return the session's label set."""
    return session.label_set


def get_controller(
    session: LabelingSession = Depends(get_session),
) -> SelectionController:
    """Return the session's selection dialog controller."""
    return session.controller
