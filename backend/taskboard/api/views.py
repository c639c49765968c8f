"""View endpoints: CRUD, the active view and its sort/filter/group state."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from taskboard.api.deps import get_workspace
from taskboard.schemas.views import (
    ActiveViewUpdate,
    DueFilterUpdate,
    FiltersUpdate,
    GroupUpdate,
    HideDoneUpdate,
    SortsUpdate,
    SortToggle,
    ViewConfig,
    ViewCreate,
    ViewUpdate,
)
from taskboard.services.workspace import Workspace

router = APIRouter(prefix="/views", tags=["views"])

WORKSPACE_DEP = Depends(get_workspace)


@router.get("", response_model=list[ViewConfig], response_model_by_alias=False)
async def list_views(workspace: Workspace = WORKSPACE_DEP) -> list[ViewConfig]:
    return workspace.views.all()


@router.post("", response_model=ViewConfig, response_model_by_alias=False)
async def create_view(
    payload: ViewCreate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    """Add a view under a generated id."""
    return workspace.add_view(payload.model_dump())


@router.get("/active", response_model=ViewConfig, response_model_by_alias=False)
async def get_active_view(workspace: Workspace = WORKSPACE_DEP) -> ViewConfig:
    """The active view (the first view when the pointer is stale)."""
    return workspace.active_view


@router.put("/active", response_model=ViewConfig, response_model_by_alias=False)
async def set_active_view(
    payload: ActiveViewUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    """Activate a view by id, or the first view of a type."""
    if payload.view_id is not None:
        if workspace.views.get(payload.view_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return workspace.set_active_view(payload.view_id)
    if payload.view_type is not None:
        workspace.set_active_view_type(payload.view_type)
    return workspace.active_view


@router.put("/active/sorts", response_model=ViewConfig, response_model_by_alias=False)
async def set_sorts(
    payload: SortsUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    """Replace the active view's sort keys (first entry is primary)."""
    return workspace.set_sorts(payload.sorts)


@router.put("/active/filters", response_model=ViewConfig, response_model_by_alias=False)
async def set_filters(
    payload: FiltersUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    return workspace.set_filters(payload.filters)


@router.put("/active/group", response_model=ViewConfig, response_model_by_alias=False)
async def set_group(
    payload: GroupUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    return workspace.set_group(payload.group)


@router.post("/active/sort-toggle", response_model=ViewConfig, response_model_by_alias=False)
async def toggle_sort(
    payload: SortToggle,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    """Cycle the column sort: ascending, descending, off."""
    return workspace.toggle_sort(payload.field_id)


@router.put(
    "/active/quick-filters/hide-done",
    response_model=ViewConfig,
    response_model_by_alias=False,
)
async def set_hide_done(
    payload: HideDoneUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    return workspace.set_hide_done(enabled=payload.enabled)


@router.put("/active/quick-filters/due", response_model=ViewConfig, response_model_by_alias=False)
async def set_due_filter(
    payload: DueFilterUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    """Swap the due-date preset of the active view; null clears it."""
    return workspace.set_due_filter(payload.preset, reference=payload.reference)


@router.get("/{view_id}", response_model=ViewConfig, response_model_by_alias=False)
async def get_view(view_id: str, workspace: Workspace = WORKSPACE_DEP) -> ViewConfig:
    view = workspace.views.get(view_id)
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return view


@router.patch("/{view_id}", response_model=ViewConfig, response_model_by_alias=False)
async def update_view(
    view_id: str,
    payload: ViewUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> ViewConfig:
    view = workspace.update_view(view_id, payload.model_dump(exclude_unset=True))
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return view


@router.delete("/{view_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_view(view_id: str, workspace: Workspace = WORKSPACE_DEP) -> None:
    """Delete a view; the last remaining view cannot be deleted."""
    if workspace.views.get(view_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if not workspace.delete_view(view_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The last view cannot be deleted",
        )
