"""View configuration schemas: sorts, filter rules and grouping."""

from __future__ import annotations

from datetime import date
from typing import Any, Final, Literal, Self

from pydantic import Field, model_validator
from sqlmodel import SQLModel

from taskboard.schemas.common import CamelModel, NonEmptyStr

ViewType = Literal["table", "kanban", "gantt", "calendar"]
VIEW_TYPES: Final[tuple[ViewType, ...]] = ("table", "kanban", "gantt", "calendar")
SortDirection = Literal["asc", "desc"]
FilterOperator = Literal[
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "is_empty",
    "is_not_empty",
    "greater_than",
    "less_than",
    "before",
    "after",
    "in",
    "not_in",
]
DuePreset = Literal["overdue", "today", "this_week", "next_7_days", "no_due_date"]


class SortConfig(CamelModel):
    """One sort key; the first entry of a view's list is the primary key."""

    field_id: str
    direction: SortDirection = "asc"


class FilterRule(CamelModel):
    """A single predicate; a view's rules combine with AND."""

    id: str
    field_id: str
    operator: FilterOperator
    value: Any = None


class GroupConfig(CamelModel):
    """Grouping field plus per-group collapsed state."""

    field_id: str
    collapsed: dict[str, bool] = Field(default_factory=dict)


class ViewConfig(CamelModel):
    """A named combination of filters, sorts and visible fields."""

    id: str
    name: str
    type: ViewType = "table"
    sorts: list[SortConfig] = Field(default_factory=list)
    filters: list[FilterRule] = Field(default_factory=list)
    group: GroupConfig | None = None
    visible_field_ids: list[str] = Field(default_factory=list)
    kanban_group_field_id: str | None = None
    gantt_start_field_id: str | None = None
    gantt_end_field_id: str | None = None


class ViewCreate(SQLModel):
    """Payload for adding a view."""

    name: NonEmptyStr
    type: ViewType = "table"
    sorts: list[SortConfig] = Field(default_factory=list)
    filters: list[FilterRule] = Field(default_factory=list)
    group: GroupConfig | None = None
    visible_field_ids: list[str] = Field(default_factory=list)
    kanban_group_field_id: str | None = None
    gantt_start_field_id: str | None = None
    gantt_end_field_id: str | None = None


class ViewUpdate(SQLModel):
    """Partial view update; the id is fixed."""

    name: NonEmptyStr | None = None
    type: ViewType | None = None
    sorts: list[SortConfig] | None = None
    filters: list[FilterRule] | None = None
    group: GroupConfig | None = None
    visible_field_ids: list[str] | None = None
    kanban_group_field_id: str | None = None
    gantt_start_field_id: str | None = None
    gantt_end_field_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def reject_id_update(cls, value: object) -> object:
        """Disallow changing a view id."""
        if isinstance(value, dict) and "id" in value:
            raise ValueError("id cannot be changed after creation.")
        return value

    @model_validator(mode="after")
    def reject_null_for_non_nullable_fields(self) -> Self:
        """Only the grouping and field-pointer keys accept null."""
        invalid = [
            name
            for name in ("name", "type", "sorts", "filters", "visible_field_ids")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if invalid:
            raise ValueError(
                f"{', '.join(invalid)} cannot be null; omit the field to leave it unchanged",
            )
        return self

    @model_validator(mode="after")
    def require_some_update(self) -> Self:
        """Reject empty updates to avoid no-op requests."""
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        return self


class ActiveViewUpdate(SQLModel):
    """Select the active view by id or by type (first view of that type)."""

    view_id: str | None = None
    view_type: ViewType | None = None

    @model_validator(mode="after")
    def require_exactly_one_target(self) -> Self:
        if (self.view_id is None) == (self.view_type is None):
            raise ValueError("Provide exactly one of view_id or view_type")
        return self


class SortsUpdate(SQLModel):
    sorts: list[SortConfig]


class FiltersUpdate(SQLModel):
    filters: list[FilterRule]


class GroupUpdate(SQLModel):
    group: GroupConfig | None = None


class SortToggle(SQLModel):
    field_id: NonEmptyStr


class HideDoneUpdate(SQLModel):
    enabled: bool


class DueFilterUpdate(SQLModel):
    """Due-date quick filter preset; null clears it."""

    preset: DuePreset | None = None
    reference: date | None = None
