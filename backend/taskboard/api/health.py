"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from taskboard.adapters.base import DataAdapter
from taskboard.api.deps import get_adapter, get_workspace
from taskboard.services.workspace import Workspace

router = APIRouter(tags=["health"])

WORKSPACE_DEP = Depends(get_workspace)
ADAPTER_DEP = Depends(get_adapter)


class HealthRead(SQLModel):
    ok: bool
    loaded: bool
    dirty: bool
    data_source: str | None
    tasks: int


@router.get("/health", response_model=HealthRead)
async def health(
    workspace: Workspace = WORKSPACE_DEP,
    adapter: DataAdapter | None = ADAPTER_DEP,
) -> HealthRead:
    """Report whether the dataset is loaded and has unsaved changes."""
    return HealthRead(
        ok=True,
        loaded=workspace.is_loaded,
        dirty=workspace.is_dirty,
        data_source=adapter.type if adapter is not None else None,
        tasks=len(workspace.tasks),
    )
