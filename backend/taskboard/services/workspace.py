"""Application state and the command layer over fields, tasks and views.

`Workspace` is the one object callers mutate. Commands with side effects
across entities (deleting a field, editing options, toggling a column,
importing) are applied here as a single step, so no caller can observe a
half-applied change. Subscribers are notified after every successful
mutation; persistence subscribes instead of being wired into each command.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from taskboard.core.errors import FieldValueError
from taskboard.core.logging import get_logger
from taskboard.core.time import utc_isoformat
from taskboard.schemas.dataset import (
    DATASET_VERSION,
    DataSetMetadata,
    DataSourceType,
    TaskDataSet,
)
from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import (
    DuePreset,
    FilterRule,
    GroupConfig,
    SortConfig,
    ViewConfig,
    ViewType,
)
from taskboard.services import quick_filters
from taskboard.services.defaults import SystemFieldIds, create_default_fields
from taskboard.services.dependencies import build_dependency_graph, would_create_cycle
from taskboard.services.field_registry import FieldRegistry
from taskboard.services.options import infer_option_value, reconcile_task_values
from taskboard.services.projection import (
    GanttBar,
    GroupColumn,
    Projection,
    bucket_by_date,
    filter_for_view,
    gantt_bars,
    group_by_field,
    project,
)
from taskboard.services.task_collection import ImportMode, TaskCollection
from taskboard.services.values import migrate_person_value, normalize_value
from taskboard.services.view_registry import ViewRegistry

logger = get_logger(__name__)

ChangeListener = Callable[[str], None]


@dataclass(slots=True)
class ImportResult:
    """Outcome of `Workspace.import_tasks`."""

    tasks: list[Task]
    added_field_ids: list[str] = field(default_factory=list)
    created_options: int = 0
    dropped_values: int = 0


def _option_count(fields: Sequence[FieldDefinition]) -> int:
    return sum(len(field_def.options or []) for field_def in fields)


def migrate_person_values(tasks: Sequence[Task], fields: Sequence[FieldDefinition]) -> int:
    """Convert legacy string person values to one-element lists in place."""
    person_ids = [field_def.id for field_def in fields if field_def.type == "person"]
    migrated = 0
    for task in tasks:
        for field_id in person_ids:
            value = task.field_values.get(field_id)
            if isinstance(value, str):
                task.field_values[field_id] = migrate_person_value(value)
                migrated += 1
    return migrated


def upgrade_system_fields(fields: Sequence[FieldDefinition]) -> list[FieldDefinition]:
    """Bring a stored schema up to the current system fields.

    Missing system fields are appended, empty system option lists are filled
    from the defaults, and system field `order` values are reset to theirs.
    """
    defaults = {field_def.id: field_def for field_def in create_default_fields()}
    upgraded: list[FieldDefinition] = []
    for field_def in fields:
        default = defaults.get(field_def.id)
        if field_def.is_system and default is not None:
            updates: dict[str, Any] = {}
            if default.options and not field_def.options:
                updates["options"] = [option.model_copy() for option in default.options]
            if field_def.order != default.order:
                updates["order"] = default.order
            if updates:
                field_def = field_def.model_copy(update=updates)
        upgraded.append(field_def)
    present = {field_def.id for field_def in upgraded}
    upgraded.extend(
        default for field_id, default in defaults.items() if field_id not in present
    )
    return upgraded


class Workspace:
    """Fields, tasks and views of one open dataset."""

    def __init__(self, dataset: TaskDataSet | None = None) -> None:
        self.fields = FieldRegistry(create_default_fields())
        self.tasks = TaskCollection()
        self.views = ViewRegistry()
        self.is_loaded = False
        self.is_dirty = False
        self._listeners: list[ChangeListener] = []
        if dataset is not None:
            self.load_dataset(dataset)

    # -- change notification -------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call `listener(kind)` after each mutation; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: str) -> None:
        for listener in list(self._listeners):
            listener(kind)

    def _changed(self, kind: str) -> None:
        self.is_dirty = True
        self._notify(kind)

    # -- dataset lifecycle ---------------------------------------------------

    def load_dataset(self, dataset: TaskDataSet, *, upgrade_legacy: bool = False) -> None:
        """Install a validated dataset as stored and mark it clean.

        Legacy person strings are always migrated. `upgrade_legacy` also runs
        `upgrade_system_fields`, for state restored from the in-process store.
        """
        fields = [field_def.model_copy(deep=True) for field_def in dataset.fields]
        if upgrade_legacy:
            fields = upgrade_system_fields(fields)
        tasks = [task.model_copy(deep=True) for task in dataset.tasks]
        migrated = migrate_person_values(tasks, fields)
        self.fields.replace_all(fields)
        self.tasks.replace_all(tasks)
        self.views.replace_all(view.model_copy(deep=True) for view in dataset.view_configs)
        self.is_loaded = True
        self.is_dirty = False
        logger.info(
            "dataset.loaded",
            extra={
                "fields": len(fields),
                "tasks": len(tasks),
                "views": len(self.views),
                "migrated_person_values": migrated,
            },
        )
        self._notify("load")

    def get_dataset(self, source: DataSourceType = "memory") -> TaskDataSet:
        """Snapshot the current state in the persisted dataset shape."""
        return TaskDataSet(
            version=DATASET_VERSION,
            fields=[field_def.model_copy(deep=True) for field_def in self.fields.all()],
            tasks=[task.model_copy(deep=True) for task in self.tasks.all()],
            view_configs=[view.model_copy(deep=True) for view in self.views.all()],
            metadata=DataSetMetadata(last_modified=utc_isoformat(), source=source),
        )

    def mark_clean(self) -> None:
        self.is_dirty = False

    # -- fields --------------------------------------------------------------

    def add_field(self, draft: Mapping[str, Any] | FieldDefinition) -> FieldDefinition:
        field_def = self.fields.add_field(draft)
        self._changed("fields")
        return field_def

    def update_field(self, field_id: str, patch: Mapping[str, Any]) -> FieldDefinition | None:
        """Merge `patch` into a field; option lists go through reconciliation."""
        changes = dict(patch)
        options = changes.pop("options", None)
        if field_id not in self.fields:
            return None
        if changes:
            updated = self.fields.update_field(field_id, changes)
        else:
            updated = self.fields.get(field_id)
        if options is not None and updated is not None and updated.has_options:
            parsed = [SelectOption.model_validate(option) for option in options]
            return self.update_field_options(field_id, parsed)
        self._changed("fields")
        return updated

    def update_field_options(
        self,
        field_id: str,
        options: Sequence[SelectOption],
    ) -> FieldDefinition | None:
        """Replace a select/multi_select option list and reconcile task values."""
        field_def = self.fields.get(field_id)
        option_changes = self.fields.update_field_options(field_id, options)
        if field_def is None or option_changes is None:
            return None
        touched = reconcile_task_values(field_def, self.tasks, option_changes)
        if touched:
            logger.info(
                "field.options.reconciled",
                extra={"field_id": field_id, "tasks": touched},
            )
        self._changed("fields")
        return field_def

    def delete_field(self, field_id: str) -> bool:
        """Delete a user field, its task values and every view reference to it."""
        removed = self.fields.delete_field(field_id)
        if removed is None:
            return False
        cleared = self.tasks.remove_field_values(field_id)
        self.views.forget_field(field_id)
        logger.debug("field.delete.cascaded", extra={"field_id": field_id, "tasks": cleared})
        self._changed("fields")
        return True

    def toggle_field_visibility(self, field_id: str) -> FieldDefinition | None:
        """Flip a field's `visible` flag and mirror it in every view's columns."""
        field_def = self.fields.get(field_id)
        if field_def is None:
            return None
        field_def.visible = not field_def.visible
        self.views.set_field_visibility(field_id, visible=field_def.visible)
        self._changed("fields")
        return field_def

    def reorder_fields(self, ordered_ids: Sequence[str]) -> None:
        self.fields.reorder_fields(ordered_ids)
        self._changed("fields")

    # -- tasks ---------------------------------------------------------------

    def normalize_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Normalize values of known fields; unknown keys pass through verbatim."""
        normalized: dict[str, Any] = {}
        for field_id, raw in values.items():
            field_def = self.fields.get(field_id)
            normalized[field_id] = raw if field_def is None else normalize_value(field_def, raw)
        return normalized

    def add_task(self, values: Mapping[str, Any] | None = None) -> Task:
        task = self.tasks.add_task(self.normalize_values(values or {}))
        self._changed("tasks")
        return task

    def update_task(self, task_id: str, field_id: str, value: Any) -> Task | None:
        return self.update_task_fields(task_id, {field_id: value})

    def update_task_fields(self, task_id: str, values: Mapping[str, Any]) -> Task | None:
        """Apply several normalized values with one timestamp bump."""
        if self.tasks.get(task_id) is None:
            return None
        normalized = self.normalize_values(values)
        self._check_dependencies(task_id, normalized.get(SystemFieldIds.DEPENDENCIES))
        task = self.tasks.update_task_fields(task_id, normalized)
        self._changed("tasks")
        return task

    def _check_dependencies(self, task_id: str, value: object) -> None:
        """Reject a dependency list under which `task_id` would transitively depend on itself."""
        if not isinstance(value, list):
            return
        graph = build_dependency_graph(self.tasks.all())
        for dependency in value:
            if isinstance(dependency, str) and would_create_cycle(graph, dependency, task_id):
                raise FieldValueError(
                    SystemFieldIds.DEPENDENCIES,
                    f"depending on {dependency!r} would create a cycle",
                )

    def delete_task(self, task_id: str) -> bool:
        deleted = self.tasks.delete_task(task_id)
        if deleted:
            self._changed("tasks")
        return deleted

    def delete_tasks(self, task_ids: Sequence[str]) -> int:
        removed = self.tasks.delete_tasks(task_ids)
        if removed:
            self._changed("tasks")
        return removed

    def import_tasks(
        self,
        tasks: Sequence[Task],
        fields: Sequence[FieldDefinition],
        mode: ImportMode = "append",
    ) -> ImportResult:
        """Merge imported fields and tasks in one step.

        New fields are added unless their id or name is taken; values of a
        field whose name matches an existing field move to that field's id.
        Select and multi_select values are mapped onto options, creating
        options for unknown labels; other known fields go through
        `normalize_value` and a cell it rejects is dropped, not the import.
        Every imported task gets a fresh id.
        """
        staging = FieldRegistry(field_def.model_copy(deep=True) for field_def in self.fields.all())
        added_field_ids: list[str] = []
        rekey: dict[str, str] = {}
        for incoming in fields:
            if staging.merge_field(incoming.model_copy(deep=True)):
                added_field_ids.append(incoming.id)
                continue
            existing = staging.find_by_name(incoming.name)
            if incoming.id not in staging and existing is not None:
                rekey[incoming.id] = existing.id

        options_before = _option_count(staging.all())
        prepared: list[Task] = []
        dropped = 0
        for task in tasks:
            values: dict[str, Any] = {}
            for raw_key, raw_value in task.field_values.items():
                key = rekey.get(raw_key, raw_key)
                field_def = staging.get(key)
                if field_def is None:
                    value = raw_value
                elif field_def.has_options:
                    value = infer_option_value(field_def, raw_value)
                else:
                    try:
                        value = normalize_value(field_def, raw_value)
                    except FieldValueError as exc:
                        dropped += 1
                        logger.debug(
                            "tasks.import.value_dropped",
                            extra={"field_id": exc.field_id, "error": str(exc)},
                        )
                        continue
                if value is not None:
                    values[key] = value
            prepared.append(task.model_copy(update={"field_values": values}))

        created_options = _option_count(staging.all()) - options_before
        self.fields.replace_all(staging.all())
        imported = self.tasks.import_tasks(prepared, mode)
        logger.info(
            "tasks.import.applied",
            extra={
                "mode": mode,
                "tasks": len(imported),
                "fields_added": len(added_field_ids),
                "options_created": created_options,
                "values_dropped": dropped,
            },
        )
        self._changed("import")
        return ImportResult(
            tasks=imported,
            added_field_ids=added_field_ids,
            created_options=created_options,
            dropped_values=dropped,
        )

    # -- views ---------------------------------------------------------------

    @property
    def active_view(self) -> ViewConfig:
        return self.views.get_active_view()

    def set_active_view(self, view_id: str) -> ViewConfig:
        """Move the active pointer (not persisted, so not a dirtying change)."""
        self.views.set_active_view(view_id)
        return self.views.get_active_view()

    def set_active_view_type(self, view_type: ViewType) -> ViewConfig | None:
        return self.views.set_active_view_type(view_type)

    def add_view(self, draft: Mapping[str, Any] | ViewConfig) -> ViewConfig:
        view = self.views.add_view(draft)
        self._changed("views")
        return view

    def update_view(self, view_id: str, patch: Mapping[str, Any]) -> ViewConfig | None:
        view = self.views.update_view(view_id, patch)
        if view is not None:
            self._changed("views")
        return view

    def delete_view(self, view_id: str) -> bool:
        deleted = self.views.delete_view(view_id)
        if deleted:
            self._changed("views")
        return deleted

    def set_sorts(self, sorts: Sequence[SortConfig]) -> ViewConfig:
        view = self.views.set_sorts(sorts)
        self._changed("views")
        return view

    def set_filters(self, filters: Sequence[FilterRule]) -> ViewConfig:
        view = self.views.set_filters(filters)
        self._changed("views")
        return view

    def set_group(self, group: GroupConfig | None) -> ViewConfig:
        view = self.views.set_group(group)
        self._changed("views")
        return view

    def toggle_sort(self, field_id: str) -> ViewConfig:
        view = self.views.toggle_sort(field_id)
        self._changed("views")
        return view

    def set_hide_done(self, *, enabled: bool) -> ViewConfig:
        """Turn the "hide completed" quick filter of the active view on or off."""
        filters = quick_filters.set_hide_done(self.active_view.filters, enabled=enabled)
        return self.set_filters(filters)

    def set_due_filter(
        self,
        preset: DuePreset | None,
        *,
        reference: date | None = None,
    ) -> ViewConfig:
        """Swap the active view's due-date quick filter batch (None clears it)."""
        filters = quick_filters.set_due_filter(
            self.active_view.filters,
            preset,
            reference=reference,
        )
        return self.set_filters(filters)

    # -- projections ---------------------------------------------------------

    def _view(self, view_id: str | None) -> ViewConfig:
        if view_id is None:
            return self.active_view
        return self.views.get(view_id) or self.active_view

    def project(self, view_id: str | None = None) -> Projection:
        """Rows and columns of a view (default: the active one)."""
        return project(self.tasks.all(), self.fields.all(), self._view(view_id))

    def kanban(self, view_id: str | None = None) -> list[GroupColumn]:
        view = self._view(view_id)
        group_field = self.fields.get(view.kanban_group_field_id or SystemFieldIds.STATUS)
        if group_field is None:
            return []
        return group_by_field(filter_for_view(self.tasks.all(), view), group_field)

    def calendar(self, view_id: str | None = None) -> dict[str, list[Task]]:
        view = self._view(view_id)
        return bucket_by_date(filter_for_view(self.tasks.all(), view))

    def gantt(self, view_id: str | None = None) -> list[GanttBar]:
        view = self._view(view_id)
        return gantt_bars(filter_for_view(self.tasks.all(), view), self.fields.all(), view)
