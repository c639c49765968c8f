"""Request dependencies shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from taskboard.adapters.base import DataAdapter
from taskboard.adapters.autosave import AutoSaver
from taskboard.services.workspace import Workspace


def get_workspace(request: Request) -> Workspace:
    """Return the workspace installed on the app at startup."""
    workspace = getattr(request.app.state, "workspace", None)
    if not isinstance(workspace, Workspace):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workspace is not loaded",
        )
    return workspace


def get_adapter(request: Request) -> DataAdapter | None:
    return getattr(request.app.state, "adapter", None)


def get_autosaver(request: Request) -> AutoSaver | None:
    return getattr(request.app.state, "autosaver", None)
