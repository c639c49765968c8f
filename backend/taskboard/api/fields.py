"""Field schema endpoints: CRUD, option editing, visibility and ordering."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from taskboard.api.deps import get_workspace
from taskboard.schemas.fields import (
    FieldCreate,
    FieldDefinition,
    FieldOperatorsRead,
    FieldOptionsUpdate,
    FieldReorder,
    FieldUpdate,
)
from taskboard.services.quick_filters import operators_for_type
from taskboard.services.workspace import Workspace

router = APIRouter(prefix="/fields", tags=["fields"])

WORKSPACE_DEP = Depends(get_workspace)


def _field_or_404(workspace: Workspace, field_id: str) -> FieldDefinition:
    field_def = workspace.fields.get(field_id)
    if field_def is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return field_def


@router.get("", response_model=list[FieldDefinition], response_model_by_alias=False)
async def list_fields(workspace: Workspace = WORKSPACE_DEP) -> list[FieldDefinition]:
    """List fields in display order."""
    return workspace.fields.ordered()


@router.post("", response_model=FieldDefinition, response_model_by_alias=False)
async def create_field(
    payload: FieldCreate,
    workspace: Workspace = WORKSPACE_DEP,
) -> FieldDefinition:
    """Add a user field at the end of the column order."""
    return workspace.add_field(payload.model_dump(exclude_unset=True))


@router.post("/reorder", response_model=list[FieldDefinition], response_model_by_alias=False)
async def reorder_fields(
    payload: FieldReorder,
    workspace: Workspace = WORKSPACE_DEP,
) -> list[FieldDefinition]:
    """Renumber fields in the given order; ids not listed keep their order."""
    workspace.reorder_fields(payload.field_ids)
    return workspace.fields.ordered()


@router.patch("/{field_id}", response_model=FieldDefinition, response_model_by_alias=False)
async def update_field(
    field_id: str,
    payload: FieldUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> FieldDefinition:
    """Edit a field; a new option list reconciles existing task values."""
    field_def = _field_or_404(workspace, field_id)
    updates = payload.model_dump(exclude_unset=True)
    if "options" in updates and not field_def.has_options:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Field type '{field_def.type}' does not use options",
        )
    updated = workspace.update_field(field_id, updates)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return updated


@router.put("/{field_id}/options", response_model=FieldDefinition, response_model_by_alias=False)
async def replace_field_options(
    field_id: str,
    payload: FieldOptionsUpdate,
    workspace: Workspace = WORKSPACE_DEP,
) -> FieldDefinition:
    """Replace a select/multi_select option list."""
    field_def = _field_or_404(workspace, field_id)
    if not field_def.has_options:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Field type '{field_def.type}' does not use options",
        )
    updated = workspace.update_field_options(field_id, payload.options)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return updated


@router.post(
    "/{field_id}/visibility",
    response_model=FieldDefinition,
    response_model_by_alias=False,
)
async def toggle_field_visibility(
    field_id: str,
    workspace: Workspace = WORKSPACE_DEP,
) -> FieldDefinition:
    """Show or hide a column in the field list and every view."""
    updated = workspace.toggle_field_visibility(field_id)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return updated


@router.get("/{field_id}/operators", response_model=FieldOperatorsRead)
async def list_field_operators(
    field_id: str,
    workspace: Workspace = WORKSPACE_DEP,
) -> FieldOperatorsRead:
    """Filter operators offered for the field's type."""
    field_def = _field_or_404(workspace, field_id)
    return FieldOperatorsRead(field_id=field_id, operators=operators_for_type(field_def.type))


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_field(
    field_id: str,
    workspace: Workspace = WORKSPACE_DEP,
) -> None:
    """Delete a user field along with its task values and view references."""
    field_def = _field_or_404(workspace, field_id)
    if field_def.is_system:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="System fields cannot be deleted",
        )
    workspace.delete_field(field_id)
