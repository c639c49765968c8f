"""Task schema."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator
from sqlmodel import SQLModel

from taskboard.core.time import utc_isoformat
from taskboard.schemas.common import CamelModel
from taskboard.schemas.fields import FieldDefinition

# Sparse, dynamically-typed values keyed by field id; absent key means empty.
TaskFieldValues = dict[str, Any]


class Task(CamelModel):
    """A task: an id plus a sparse map of field values."""

    id: str
    field_values: TaskFieldValues = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_isoformat)
    updated_at: str = Field(default_factory=utc_isoformat)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: object) -> object:
        """Accept numeric ids from hand-written or legacy files."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def value(self, field_id: str) -> Any:
        """Return the stored value for `field_id` (None when absent)."""
        return self.field_values.get(field_id)


class TaskCreate(SQLModel):
    """Payload for creating a task; values are normalized per field type."""

    field_values: TaskFieldValues = Field(default_factory=dict)


class TaskUpdate(SQLModel):
    """Partial value update; a null value clears that field."""

    field_values: TaskFieldValues

    @field_validator("field_values")
    @classmethod
    def require_some_value(cls, value: TaskFieldValues) -> TaskFieldValues:
        """Reject empty updates to avoid no-op requests."""
        if not value:
            raise ValueError("At least one field value is required")
        return value


class TaskBulkDelete(SQLModel):
    """Ids of tasks to delete; unknown ids are ignored."""

    task_ids: list[str] = Field(min_length=1)


class TaskBulkDeleteRead(SQLModel):
    deleted: int


class TaskImportRow(SQLModel):
    """One imported task; the id is replaced on import."""

    id: str | None = None
    field_values: TaskFieldValues = Field(default_factory=dict)


class TaskImport(SQLModel):
    """Tasks and field definitions to merge into the workspace."""

    tasks: list[TaskImportRow]
    fields: list[FieldDefinition] = Field(default_factory=list)
    mode: Literal["append", "replace"] = "append"


class TaskImportRead(SQLModel):
    """Summary returned after an import."""

    imported: int
    task_ids: list[str]
    added_field_ids: list[str]
    created_options: int
    dropped_values: int = 0
