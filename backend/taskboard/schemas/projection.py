"""Read models for view projections."""

from __future__ import annotations

from datetime import date

from sqlmodel import Field, SQLModel

from taskboard.schemas.fields import FieldDefinition
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import ViewConfig

# Keep these symbols as runtime globals so Pydantic can resolve
# deferred annotations reliably.
RUNTIME_ANNOTATION_TYPES = (date, FieldDefinition, Task, ViewConfig)


class ProjectionRead(SQLModel):
    """Visible columns and ordered rows of one view."""

    view: ViewConfig
    fields: list[FieldDefinition]
    tasks: list[Task]


class KanbanColumnRead(SQLModel):
    id: str
    label: str
    color: str
    tasks: list[Task] = Field(default_factory=list)


class KanbanRead(SQLModel):
    view_id: str
    group_field_id: str | None
    columns: list[KanbanColumnRead]


class CalendarRead(SQLModel):
    """Tasks bucketed by due day (`YYYY-MM-DD`)."""

    view_id: str
    days: dict[str, list[Task]]


class GanttBarRead(SQLModel):
    task_id: str
    title: str
    start: date
    end: date
    progress: float
    color: str


class DependencyEdgeRead(SQLModel):
    predecessor: str
    successor: str


class GanttRead(SQLModel):
    view_id: str
    bars: list[GanttBarRead]
    dependencies: list[DependencyEdgeRead]
