"""Task endpoints: CRUD, bulk delete and import."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from taskboard.api.deps import get_workspace
from taskboard.core.ids import generate_id
from taskboard.schemas.tasks import (
    Task,
    TaskBulkDelete,
    TaskBulkDeleteRead,
    TaskCreate,
    TaskImport,
    TaskImportRead,
    TaskUpdate,
)
from taskboard.services.workspace import Workspace

router = APIRouter(prefix="/tasks", tags=["tasks"])

WORKSPACE_DEP = Depends(get_workspace)


@router.get("", response_model=list[Task], response_model_by_alias=False)
async def list_tasks(workspace: Workspace = WORKSPACE_DEP) -> list[Task]:
    """List every task in insertion order, unfiltered."""
    return workspace.tasks.all()


@router.post("", response_model=Task, response_model_by_alias=False)
async def create_task(
    payload: TaskCreate,
    workspace: Workspace = WORKSPACE_DEP,
) -> Task:
    """Create a task; values of known fields are normalized to their type."""
    return workspace.add_task(payload.field_values)


@router.post("/bulk-delete", response_model=TaskBulkDeleteRead)
async def bulk_delete_tasks(
    payload: TaskBulkDelete,
    workspace: Workspace = WORKSPACE_DEP,
) -> TaskBulkDeleteRead:
    """Delete several tasks; unknown ids are ignored."""
    return TaskBulkDeleteRead(deleted=workspace.delete_tasks(payload.task_ids))


@router.post("/import", response_model=TaskImportRead)
async def import_tasks(
    payload: TaskImport,
    workspace: Workspace = WORKSPACE_DEP,
) -> TaskImportRead:
    """Merge imported fields and tasks; every task receives a fresh id."""
    tasks = [
        Task(id=row.id or generate_id(), field_values=row.field_values) for row in payload.tasks
    ]
    result = workspace.import_tasks(tasks, payload.fields, payload.mode)
    return TaskImportRead(
        imported=len(result.tasks),
        task_ids=[task.id for task in result.tasks],
        added_field_ids=result.added_field_ids,
        created_options=result.created_options,
        dropped_values=result.dropped_values,
    )


@router.get("/{task_id}", response_model=Task, response_model_by_alias=False)
async def get_task(task_id: str, workspace: Workspace = WORKSPACE_DEP) -> Task:
    task = workspace.tasks.get(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return task


@router.patch("/{task_id}", response_model=Task, response_model_by_alias=False)
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> Task:
    """Set several field values at once; a null value clears the field."""
    task = workspace.update_task_fields(task_id, payload.field_values)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, workspace: Workspace = WORKSPACE_DEP) -> None:
    if not workspace.delete_task(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
