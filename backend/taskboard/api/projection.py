"""Read-only projections of a view: table rows, kanban, calendar and gantt."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskboard.api.deps import get_workspace
from taskboard.schemas.projection import (
    CalendarRead,
    DependencyEdgeRead,
    GanttBarRead,
    GanttRead,
    KanbanColumnRead,
    KanbanRead,
    ProjectionRead,
)
from taskboard.schemas.views import ViewConfig
from taskboard.services.defaults import SystemFieldIds
from taskboard.services.dependencies import dependency_edges
from taskboard.services.workspace import Workspace

router = APIRouter(prefix="/projection", tags=["projection"])

WORKSPACE_DEP = Depends(get_workspace)
VIEW_ID_QUERY = Query(default=None)


def _resolve_view(workspace: Workspace, view_id: str | None) -> ViewConfig:
    if view_id is None:
        return workspace.active_view
    view = workspace.views.get(view_id)
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return view


@router.get("", response_model=ProjectionRead, response_model_by_alias=False)
async def get_projection(
    view_id: str | None = VIEW_ID_QUERY,
    workspace: Workspace = WORKSPACE_DEP,
) -> ProjectionRead:
    """Filtered, sorted rows and the visible columns of a view."""
    view = _resolve_view(workspace, view_id)
    projection = workspace.project(view.id)
    return ProjectionRead(view=projection.view, fields=projection.fields, tasks=projection.tasks)


@router.get("/kanban", response_model=KanbanRead, response_model_by_alias=False)
async def get_kanban(
    view_id: str | None = VIEW_ID_QUERY,
    workspace: Workspace = WORKSPACE_DEP,
) -> KanbanRead:
    """Filtered tasks grouped into one column per option of the group field."""
    view = _resolve_view(workspace, view_id)
    group_field_id = view.kanban_group_field_id or SystemFieldIds.STATUS
    columns = [
        KanbanColumnRead(id=column.id, label=column.label, color=column.color, tasks=column.tasks)
        for column in workspace.kanban(view.id)
    ]
    return KanbanRead(
        view_id=view.id,
        group_field_id=group_field_id if group_field_id in workspace.fields else None,
        columns=columns,
    )


@router.get("/calendar", response_model=CalendarRead, response_model_by_alias=False)
async def get_calendar(
    view_id: str | None = VIEW_ID_QUERY,
    workspace: Workspace = WORKSPACE_DEP,
) -> CalendarRead:
    view = _resolve_view(workspace, view_id)
    return CalendarRead(view_id=view.id, days=workspace.calendar(view.id))


@router.get("/gantt", response_model=GanttRead, response_model_by_alias=False)
async def get_gantt(
    view_id: str | None = VIEW_ID_QUERY,
    workspace: Workspace = WORKSPACE_DEP,
) -> GanttRead:
    """Bars for dated tasks plus dependency edges between them."""
    view = _resolve_view(workspace, view_id)
    bars = workspace.gantt(view.id)
    shown = {bar.task_id for bar in bars}
    edges = [
        DependencyEdgeRead(predecessor=edge.predecessor, successor=edge.successor)
        for edge in dependency_edges(workspace.tasks.all())
        if edge.predecessor in shown and edge.successor in shown
    ]
    return GanttRead(
        view_id=view.id,
        bars=[
            GanttBarRead(
                task_id=bar.task_id,
                title=bar.title,
                start=bar.start,
                end=bar.end,
                progress=bar.progress,
                color=bar.color,
            )
            for bar in bars
        ],
        dependencies=edges,
    )
