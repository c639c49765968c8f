"""Projection pipeline: filter, sort and column selection for a view.

Grouping helpers (kanban columns, calendar buckets, gantt bars) work on the
filtered list the pipeline produces.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Final

from taskboard.core.time import parse_iso_datetime
from taskboard.schemas.fields import FieldDefinition
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import ViewConfig
from taskboard.services.defaults import SystemFieldIds
from taskboard.services.filters import apply_filters
from taskboard.services.sanitize import DEFAULT_OPTION_COLOR, sanitize_color
from taskboard.services.sorting import apply_sorts

UNASSIGNED_COLUMN_ID: Final[str] = "__unassigned__"
UNASSIGNED_COLUMN_LABEL: Final[str] = "Uncategorized"
DEFAULT_BAR_COLOR: Final[str] = "#3b82f6"
UNTITLED: Final[str] = "Untitled"


@dataclass(frozen=True, slots=True)
class Projection:
    """What a view renders: the visible columns and the ordered rows."""

    view: ViewConfig
    fields: list[FieldDefinition]
    tasks: list[Task]


@dataclass(slots=True)
class GroupColumn:
    id: str
    label: str
    color: str
    tasks: list[Task] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GanttBar:
    task_id: str
    title: str
    start: date
    end: date
    progress: float
    color: str


def visible_fields(fields: Sequence[FieldDefinition], view: ViewConfig) -> list[FieldDefinition]:
    """Fields listed in `view.visible_field_ids`, in that order; unknown ids are skipped."""
    by_id = {field_def.id: field_def for field_def in fields}
    return [by_id[field_id] for field_id in view.visible_field_ids if field_id in by_id]


def filter_for_view(tasks: Sequence[Task], view: ViewConfig) -> list[Task]:
    return apply_filters(tasks, view.filters)


def project(
    tasks: Sequence[Task],
    fields: Sequence[FieldDefinition],
    view: ViewConfig,
) -> Projection:
    """Filter `tasks` with the view's rules, sort them and select its columns."""
    rows = apply_sorts(filter_for_view(tasks, view), view.sorts)
    return Projection(view=view, fields=visible_fields(fields, view), tasks=rows)


def _column_keys(task: Task, group_field: FieldDefinition) -> list[str]:
    value = task.value(group_field.id)
    if group_field.type in {"multi_select", "person"}:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and item != ""]
    if value is None or value == "":
        return []
    return [str(value)]


def group_by_field(tasks: Sequence[Task], group_field: FieldDefinition) -> list[GroupColumn]:
    """Split `tasks` into one column per option plus an unassigned column.

    select: a task joins the column of its option id.
    multi_select/person: a task joins one column per element; multi_select
    elements are matched against option labels, then ids. Person values
    without options open a column per distinct name.
    The unassigned column is only returned when it holds tasks.
    """
    columns: dict[str, GroupColumn] = {}
    lookup: dict[str, str] = {}
    for option in group_field.options or []:
        columns[option.id] = GroupColumn(
            id=option.id,
            label=option.label,
            color=sanitize_color(option.color),
        )
        lookup.setdefault(option.id, option.id)
        if group_field.type == "multi_select":
            lookup.setdefault(option.label, option.id)
    unassigned = GroupColumn(
        id=UNASSIGNED_COLUMN_ID,
        label=UNASSIGNED_COLUMN_LABEL,
        color=DEFAULT_OPTION_COLOR,
    )
    dynamic = group_field.type == "person"

    for task in tasks:
        placed = False
        for key in _column_keys(task, group_field):
            column_id = lookup.get(key)
            if column_id is None and dynamic:
                column_id = key
                lookup[key] = key
                columns[key] = GroupColumn(id=key, label=key, color=DEFAULT_OPTION_COLOR)
            if column_id is None:
                continue
            column = columns[column_id]
            if not column.tasks or column.tasks[-1] is not task:
                column.tasks.append(task)
            placed = True
        if not placed:
            unassigned.tasks.append(task)

    result = list(columns.values())
    if unassigned.tasks:
        result.append(unassigned)
    return result


def date_key(value: object) -> str | None:
    """The `YYYY-MM-DD` part of an ISO date or datetime string."""
    if not isinstance(value, str) or not value:
        return None
    return value.split("T", 1)[0]


def bucket_by_date(
    tasks: Sequence[Task],
    field_id: str = SystemFieldIds.DUE_DATE,
) -> dict[str, list[Task]]:
    """Calendar buckets keyed by day; tasks without a date are left out."""
    buckets: dict[str, list[Task]] = {}
    for task in tasks:
        key = date_key(task.value(field_id))
        if key is not None:
            buckets.setdefault(key, []).append(task)
    return buckets


def _as_day(value: object) -> date | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = parse_iso_datetime(value)
    return parsed.date() if parsed is not None else None


def _progress(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(min(100, max(0, value)))


def gantt_bars(
    tasks: Sequence[Task],
    fields: Sequence[FieldDefinition],
    view: ViewConfig,
) -> list[GanttBar]:
    """Timeline bars for the tasks carrying a start or an end date.

    A missing side copies the other; an end before the start is clamped to
    the start.
    """
    start_id = view.gantt_start_field_id or SystemFieldIds.START_DATE
    end_id = view.gantt_end_field_id or SystemFieldIds.DUE_DATE
    status_field = next(
        (field_def for field_def in fields if field_def.id == SystemFieldIds.STATUS),
        None,
    )
    bars: list[GanttBar] = []
    for task in tasks:
        start = _as_day(task.value(start_id))
        end = _as_day(task.value(end_id))
        start = start or end
        end = end or start
        if start is None or end is None:
            continue
        if end < start:
            end = start
        option = None
        status = task.value(SystemFieldIds.STATUS)
        if status_field is not None and isinstance(status, str):
            option = next((opt for opt in status_field.options or [] if opt.id == status), None)
        title = task.value(SystemFieldIds.TITLE)
        color = sanitize_color(option.color, DEFAULT_BAR_COLOR) if option else DEFAULT_BAR_COLOR
        bars.append(
            GanttBar(
                task_id=task.id,
                title=str(title) if title is not None else UNTITLED,
                start=start,
                end=end,
                progress=_progress(task.value(SystemFieldIds.PROGRESS)),
                color=color,
            ),
        )
    return bars
