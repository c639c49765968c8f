from __future__ import annotations

from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.schemas.tasks import Task
from taskboard.services.defaults import SystemFieldIds, create_default_fields
from taskboard.services.field_registry import FieldRegistry
from taskboard.services.options import (
    diff_options,
    ensure_option,
    infer_option_value,
    reconcile_task_values,
)


def _tags_field() -> FieldDefinition:
    return FieldDefinition(
        id="tags",
        name="Tags",
        type="multi_select",
        options=[SelectOption(id="a", label="X"), SelectOption(id="b", label="Y")],
    )


def test_add_field_assigns_fresh_id_next_order_and_visibility() -> None:
    registry = FieldRegistry(create_default_fields())
    highest = max(field_def.order for field_def in registry.all())

    added = registry.add_field(
        {"id": "spoofed", "name": "Budget", "type": "number", "visible": False, "is_system": True},
    )

    assert added.id != "spoofed"
    assert added.order == highest + 1
    assert added.visible is True
    assert added.is_system is False
    assert registry.get(added.id) is added


def test_add_field_to_empty_registry_starts_at_zero() -> None:
    registry = FieldRegistry()
    assert registry.add_field({"name": "First", "type": "text"}).order == 0


def test_update_field_merges_patch_and_keeps_type() -> None:
    registry = FieldRegistry(create_default_fields())

    updated = registry.update_field(
        SystemFieldIds.PRIORITY,
        {"name": "Urgency", "type": "text", "id": "other"},
    )

    assert updated is not None
    assert updated.name == "Urgency"
    assert updated.type == "select"
    assert updated.id == SystemFieldIds.PRIORITY
    assert updated.options
    assert registry.get(SystemFieldIds.PRIORITY) is updated


def test_update_missing_field_is_a_no_op() -> None:
    registry = FieldRegistry(create_default_fields())
    assert registry.update_field("missing", {"name": "x"}) is None


def test_delete_field_refuses_system_fields() -> None:
    registry = FieldRegistry(create_default_fields())
    before = len(registry)

    assert registry.delete_field(SystemFieldIds.TITLE) is None
    assert len(registry) == before
    assert registry.delete_field("missing") is None


def test_delete_user_field() -> None:
    registry = FieldRegistry(create_default_fields())
    added = registry.add_field({"name": "Budget", "type": "number"})

    assert registry.delete_field(added.id) is added
    assert added.id not in registry


def test_reorder_fields_assigns_array_index_to_listed_ids() -> None:
    registry = FieldRegistry(create_default_fields())

    moved = registry.reorder_fields([SystemFieldIds.NOTES, "missing", SystemFieldIds.TITLE])

    assert moved == 2
    notes = registry.get(SystemFieldIds.NOTES)
    title = registry.get(SystemFieldIds.TITLE)
    assert notes is not None and notes.order == 0
    assert title is not None and title.order == 2


def test_merge_field_refuses_id_or_name_collisions() -> None:
    registry = FieldRegistry(create_default_fields())

    assert registry.merge_field(FieldDefinition(id="title", name="Other", type="text")) is False
    assert registry.merge_field(FieldDefinition(id="new_id", name="Status", type="text")) is False
    merged = FieldDefinition(id="budget", name="Budget", type="number")
    assert registry.merge_field(merged) is True
    stored = registry.get("budget")
    assert stored is not None
    assert stored.order == max(field_def.order for field_def in registry.all())


def test_update_field_options_on_non_option_field_is_a_no_op() -> None:
    registry = FieldRegistry(create_default_fields())
    assert registry.update_field_options(SystemFieldIds.TITLE, []) is None
    assert registry.update_field_options("missing", []) is None


def test_select_reconciliation_clears_removed_option_ids() -> None:
    registry = FieldRegistry(create_default_fields())
    status = registry.get(SystemFieldIds.STATUS)
    assert status is not None
    tasks = [
        Task(id="1", field_values={"status": "on_hold"}),
        Task(id="2", field_values={"status": "done"}),
        Task(id="3", field_values={}),
    ]
    kept = [option for option in status.options or [] if option.id != "on_hold"]

    changes = registry.update_field_options(SystemFieldIds.STATUS, kept)
    assert changes is not None
    touched = reconcile_task_values(status, tasks, changes)

    assert touched == 1
    assert all(task.field_values.get("status") != "on_hold" for task in tasks)
    assert tasks[1].field_values == {"status": "done"}


def test_multi_select_reconciliation_rename_then_remove() -> None:
    field_def = _tags_field()
    task = Task(id="1", field_values={"tags": ["X", "Y"]})

    renamed = [SelectOption(id="a", label="Z"), SelectOption(id="b", label="Y")]
    reconcile_task_values(field_def, [task], diff_options(field_def.options or [], renamed))
    assert task.field_values["tags"] == ["Z", "Y"]

    removed = [SelectOption(id="a", label="Z")]
    reconcile_task_values(field_def, [task], diff_options(renamed, removed))
    assert task.field_values["tags"] == ["Z"]


def test_multi_select_reconciliation_removing_everything_deletes_the_key() -> None:
    field_def = _tags_field()
    task = Task(id="1", field_values={"tags": ["X", "Y"]})

    reconcile_task_values(field_def, [task], diff_options(field_def.options or [], []))

    assert "tags" not in task.field_values


def test_multi_select_reconciliation_collapses_duplicates_after_rename() -> None:
    field_def = _tags_field()
    task = Task(id="1", field_values={"tags": ["X", "Y"]})
    renamed = [SelectOption(id="a", label="Y"), SelectOption(id="b", label="Y")]

    reconcile_task_values(field_def, [task], diff_options(field_def.options or [], renamed))

    assert task.field_values["tags"] == ["Y"]


def test_unchanged_options_touch_nothing() -> None:
    field_def = _tags_field()
    task = Task(id="1", field_values={"tags": ["X"]})
    changes = diff_options(field_def.options or [], field_def.options or [])

    assert changes.is_empty
    assert reconcile_task_values(field_def, [task], changes) == 0


def test_ensure_option_reuses_or_appends() -> None:
    field_def = _tags_field()

    assert ensure_option(field_def, " X ") is not None
    assert len(field_def.options or []) == 2
    created = ensure_option(field_def, "  New  ")
    assert created is not None
    assert created.label == "New"
    assert (field_def.options or [])[-1] is created
    assert ensure_option(field_def, "   ") is None


def test_infer_option_value_for_select_returns_ids() -> None:
    status = FieldDefinition(
        id="status",
        name="Status",
        type="select",
        options=[SelectOption(id="a", label="Open")],
    )

    assert infer_option_value(status, "Open") == "a"
    created_id = infer_option_value(status, "Blocked")
    assert created_id != "Blocked"
    blocked = status.find_option("Blocked")
    assert blocked is not None
    assert blocked.id == created_id


def test_infer_option_value_for_multi_select_returns_labels() -> None:
    field_def = _tags_field()

    assert infer_option_value(field_def, "a, New，X") == ["X", "New"]
    assert infer_option_value(field_def, []) is None
