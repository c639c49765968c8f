"""Built-in field schema, default views and demo data."""

from __future__ import annotations

from datetime import timedelta
from typing import Final

from taskboard.core.ids import generate_id
from taskboard.core.time import today, utc_isoformat
from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import FilterRule, ViewConfig


class SystemFieldIds:
    """Ids of the fields every dataset carries."""

    TITLE: Final = "title"
    STATUS: Final = "status"
    ASSIGNEE: Final = "assignee"
    DUE_DATE: Final = "due_date"
    PRIORITY: Final = "priority"
    DESCRIPTION: Final = "description"
    TAGS: Final = "tags"
    CATEGORY: Final = "category"
    START_DATE: Final = "start_date"
    PROGRESS: Final = "progress"
    DEPENDENCIES: Final = "dependencies"
    NOTES: Final = "notes"
    URL: Final = "url"


DONE_STATUS_ID: Final[str] = "done"
HIDE_DONE_FILTER_ID: Final[str] = "default-hide-done"
DEFAULT_ACTIVE_VIEW_ID: Final[str] = "view-table"


def default_status_options() -> list[SelectOption]:
    return [
        SelectOption(id="not_started", label="Not started", color="#94a3b8"),
        SelectOption(id="in_progress", label="In progress", color="#3b82f6"),
        SelectOption(id=DONE_STATUS_ID, label="Done", color="#22c55e"),
        SelectOption(id="on_hold", label="On hold", color="#f59e0b"),
    ]


def default_priority_options() -> list[SelectOption]:
    return [
        SelectOption(id="high", label="High", color="#ef4444"),
        SelectOption(id="medium", label="Medium", color="#f59e0b"),
        SelectOption(id="low", label="Low", color="#22c55e"),
    ]


def default_category_options() -> list[SelectOption]:
    return [
        SelectOption(id="requirements", label="Requirements", color="#8b5cf6"),
        SelectOption(id="pr", label="Public relations", color="#ec4899"),
        SelectOption(id="web", label="Web", color="#3b82f6"),
        SelectOption(id="application", label="Applications", color="#10b981"),
        SelectOption(id="qualification", label="Qualifications", color="#f59e0b"),
        SelectOption(id="event", label="Events", color="#f43f5e"),
        SelectOption(id="system", label="Systems", color="#64748b"),
        SelectOption(id="meeting", label="Meetings", color="#78716c"),
    ]


def create_default_fields() -> list[FieldDefinition]:
    """Return a fresh copy of the system field schema."""
    ids = SystemFieldIds

    def system(
        field_id: str,
        name: str,
        field_type: str,
        order: int,
        width: int,
        *,
        visible: bool = True,
        required: bool = False,
        options: list[SelectOption] | None = None,
        default_value: object | None = None,
    ) -> FieldDefinition:
        return FieldDefinition(
            id=field_id,
            name=name,
            type=field_type,
            required=required,
            order=order,
            width=width,
            visible=visible,
            options=options,
            default_value=default_value,
            is_system=True,
        )

    return [
        system(ids.TITLE, "Title", "text", 0, 300, required=True),
        system(ids.CATEGORY, "Category", "select", 1, 130, options=default_category_options()),
        system(
            ids.STATUS,
            "Status",
            "select",
            2,
            120,
            options=default_status_options(),
            default_value="not_started",
        ),
        system(ids.START_DATE, "Start Date", "date", 3, 130),
        system(ids.DUE_DATE, "Due Date", "date", 4, 130),
        system(ids.ASSIGNEE, "Assignee", "person", 5, 120),
        system(ids.PRIORITY, "Priority", "select", 6, 100, options=default_priority_options()),
        system(ids.DESCRIPTION, "Description", "text", 7, 200, visible=False),
        system(ids.TAGS, "Tags", "multi_select", 8, 150, options=[]),
        system(ids.PROGRESS, "Progress", "progress", 9, 120),
        system(ids.URL, "URL", "url", 10, 200),
        system(
            ids.DEPENDENCIES,
            "Dependencies",
            "multi_select",
            11,
            150,
            visible=False,
            options=[],
        ),
        system(ids.NOTES, "Notes", "text", 12, 200, visible=False),
    ]


def hide_done_rule() -> FilterRule:
    """The quick filter that hides completed tasks."""
    return FilterRule(
        id=HIDE_DONE_FILTER_ID,
        field_id=SystemFieldIds.STATUS,
        operator="not_equals",
        value=DONE_STATUS_ID,
    )


def create_default_views() -> list[ViewConfig]:
    """Return the gantt, table, calendar and kanban views of a new dataset."""
    ids = SystemFieldIds
    return [
        ViewConfig(
            id="view-gantt",
            name="Gantt",
            type="gantt",
            visible_field_ids=[ids.TITLE, ids.STATUS, ids.ASSIGNEE, ids.PROGRESS],
            gantt_start_field_id=ids.START_DATE,
            gantt_end_field_id=ids.DUE_DATE,
        ),
        ViewConfig(
            id=DEFAULT_ACTIVE_VIEW_ID,
            name="Table",
            type="table",
            filters=[hide_done_rule()],
            visible_field_ids=[
                ids.TITLE,
                ids.STATUS,
                ids.START_DATE,
                ids.DUE_DATE,
                ids.ASSIGNEE,
                ids.TAGS,
            ],
        ),
        ViewConfig(
            id="view-calendar",
            name="Calendar",
            type="calendar",
            visible_field_ids=[ids.TITLE, ids.STATUS, ids.DUE_DATE],
        ),
        ViewConfig(
            id="view-kanban",
            name="Kanban",
            type="kanban",
            visible_field_ids=[ids.TITLE, ids.ASSIGNEE, ids.DUE_DATE, ids.PRIORITY],
            kanban_group_field_id=ids.STATUS,
        ),
    ]


_DEMO_ROWS: Final[tuple[tuple[str, str, str, int, str, str, tuple[str, ...], int, int], ...]] = (
    # title, status, assignee, due offset, priority, description, tags, progress, start offset
    ("Draft the project plan", "in_progress", "Taro Tanaka", 3, "high",
     "Write the Q2 project plan", ("Planning", "Docs"), 60, -2),
    ("UI design review", "not_started", "Hanako Suzuki", 5, "medium",
     "Review the designs for the new screens", ("Design", "Review"), 0, 2),
    ("Fix bug #1234", DONE_STATUS_ID, "Jiro Yamada", -1, "high",
     "Fix the error on the login screen", ("Bug",), 100, -3),
    ("Run user testing", "on_hold", "Misaki Sato", 10, "medium",
     "Run user tests before the release", ("Testing", "UX"), 20, 7),
    ("Update the API reference", "not_started", "Taro Tanaka", 7, "low",
     "Bring the REST API reference up to date", ("Docs", "API"), 0, 4),
    ("Improve performance", "in_progress", "Jiro Yamada", 14, "high",
     "Speed up dashboard rendering", ("Performance",), 30, -1),
)


def create_demo_tasks() -> list[Task]:
    """Return the sample tasks served by the in-memory data source."""
    ids = SystemFieldIds
    base = today()
    now = utc_isoformat()
    tasks: list[Task] = []
    for title, status, assignee, due, priority, description, tags, progress, start in _DEMO_ROWS:
        tasks.append(
            Task(
                id=generate_id(),
                field_values={
                    ids.TITLE: title,
                    ids.STATUS: status,
                    ids.ASSIGNEE: [assignee],
                    ids.DUE_DATE: (base + timedelta(days=due)).isoformat(),
                    ids.PRIORITY: priority,
                    ids.DESCRIPTION: description,
                    ids.TAGS: list(tags),
                    ids.PROGRESS: progress,
                    ids.START_DATE: (base + timedelta(days=start)).isoformat(),
                },
                created_at=now,
                updated_at=now,
            ),
        )
    return tasks
