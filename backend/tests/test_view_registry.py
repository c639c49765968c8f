from __future__ import annotations

from datetime import date

import pytest

from taskboard.schemas.tasks import Task
from taskboard.schemas.views import FilterRule, GroupConfig, SortConfig, ViewConfig
from taskboard.services.defaults import HIDE_DONE_FILTER_ID, create_default_views
from taskboard.services.filters import apply_filters
from taskboard.services.quick_filters import (
    DUE_FILTER_PREFIX,
    apply_quick_filters,
    due_date_rules,
    has_hide_done,
    operators_for_type,
    set_due_filter,
    set_hide_done,
)
from taskboard.services.view_registry import ViewRegistry


def test_empty_registry_falls_back_to_default_views() -> None:
    registry = ViewRegistry([])
    assert [view.type for view in registry.all()] == ["gantt", "table", "calendar", "kanban"]
    assert registry.get_active_view().id == "view-table"


def test_stale_active_pointer_resolves_to_first_view() -> None:
    registry = ViewRegistry(create_default_views())

    registry.set_active_view("does-not-exist")

    assert registry.get_active_view().id == "view-gantt"


def test_add_and_update_view() -> None:
    registry = ViewRegistry(create_default_views())

    view = registry.add_view({"id": "ignored", "name": "Mine", "type": "kanban"})
    updated = registry.update_view(view.id, {"name": "Renamed", "id": "hijack"})

    assert view.id != "ignored"
    assert updated is not None
    assert updated.id == view.id
    assert updated.name == "Renamed"
    assert registry.update_view("missing", {"name": "x"}) is None


def test_delete_last_view_is_refused() -> None:
    registry = ViewRegistry([ViewConfig(id="only", name="Only")])

    assert registry.delete_view("only") is False
    assert [view.id for view in registry.all()] == ["only"]


def test_delete_active_view_moves_pointer_to_first_view() -> None:
    registry = ViewRegistry(create_default_views())
    registry.set_active_view("view-kanban")

    assert registry.delete_view("view-kanban") is True
    assert registry.active_view_id == "view-gantt"
    assert registry.delete_view("missing") is False


def test_shortcuts_target_the_active_view() -> None:
    registry = ViewRegistry(create_default_views())
    registry.set_active_view("view-calendar")

    registry.set_sorts([SortConfig(field_id="title")])
    registry.set_filters([FilterRule(id="r", field_id="title", operator="is_not_empty")])
    registry.set_group(GroupConfig(field_id="status"))

    calendar = registry.get("view-calendar")
    table = registry.get("view-table")
    assert calendar is not None and table is not None
    assert calendar.sorts[0].field_id == "title"
    assert calendar.filters[0].id == "r"
    assert calendar.group is not None and calendar.group.field_id == "status"
    assert table.sorts == []


def test_toggle_sort_cycles_asc_desc_none() -> None:
    registry = ViewRegistry(create_default_views())
    registry.set_sorts([SortConfig(field_id="other")])

    first = registry.toggle_sort("title").sorts
    assert [(s.field_id, s.direction) for s in first] == [("title", "asc")]
    assert [s.direction for s in registry.toggle_sort("title").sorts] == ["desc"]
    assert registry.toggle_sort("title").sorts == []


def test_set_active_view_type_selects_first_of_type() -> None:
    registry = ViewRegistry(create_default_views())

    assert registry.set_active_view_type("kanban") is not None
    assert registry.get_active_view().id == "view-kanban"

    registry.set_active_view("view-table")
    assert registry.set_active_view_type("calendar") is not None
    assert ViewRegistry([ViewConfig(id="t", name="t")]).set_active_view_type("gantt") is None


def test_forget_field_strips_every_reference() -> None:
    registry = ViewRegistry(create_default_views())
    registry.set_active_view("view-table")
    registry.set_sorts([SortConfig(field_id="assignee")])
    registry.set_group(GroupConfig(field_id="assignee"))

    registry.forget_field("assignee")

    for view in registry.all():
        assert "assignee" not in view.visible_field_ids
        assert all(sort.field_id != "assignee" for sort in view.sorts)
        assert all(rule.field_id != "assignee" for rule in view.filters)
        assert view.group is None or view.group.field_id != "assignee"


def test_operators_for_type() -> None:
    assert operators_for_type("checkbox") == ["equals"]
    assert operators_for_type("multi_select")[:2] == ["in", "not_in"]
    assert operators_for_type("date")[:3] == ["equals", "before", "after"]
    assert operators_for_type("mystery") == ["equals", "not_equals", "is_empty", "is_not_empty"]


def test_hide_done_toggle_is_idempotent() -> None:
    other = FilterRule(id="mine", field_id="title", operator="contains", value="x")

    enabled = set_hide_done(set_hide_done([other], enabled=True), enabled=True)
    disabled = set_hide_done(enabled, enabled=False)

    assert [rule.id for rule in enabled] == ["mine", HIDE_DONE_FILTER_ID]
    assert has_hide_done(enabled)
    assert disabled == [other]
    assert not has_hide_done(disabled)


def test_apply_quick_filters_replaces_only_its_batch() -> None:
    mine = FilterRule(id="mine", field_id="title", operator="is_not_empty")
    old = FilterRule(id=f"{DUE_FILTER_PREFIX}old", field_id="due_date", operator="is_empty")
    new = FilterRule(id=f"{DUE_FILTER_PREFIX}new", field_id="due_date", operator="is_not_empty")

    assert apply_quick_filters([mine, old], DUE_FILTER_PREFIX, [new]) == [mine, new]


@pytest.mark.parametrize(
    ("preset", "inside", "outside"),
    [
        ("overdue", ["2024-05-14"], ["2024-05-15", "2024-05-20"]),
        ("today", ["2024-05-15", "2024-05-15T23:00:00.000Z"], ["2024-05-14", "2024-05-16"]),
        ("this_week", ["2024-05-13", "2024-05-19"], ["2024-05-12", "2024-05-20"]),
        ("next_7_days", ["2024-05-15", "2024-05-21"], ["2024-05-14", "2024-05-22"]),
    ],
)
def test_due_date_presets(preset: str, inside: list[str], outside: list[str]) -> None:
    # 2024-05-15 is a Wednesday.
    rules = due_date_rules(preset, reference=date(2024, 5, 15))
    assert all(rule.id.startswith(DUE_FILTER_PREFIX) for rule in rules)
    tasks = [Task(id=due, field_values={"due_date": due}) for due in [*inside, *outside]]

    kept = [task.id for task in apply_filters(tasks, rules)]

    assert kept == inside


def test_no_due_date_preset_keeps_undated_tasks() -> None:
    tasks = [Task(id="dated", field_values={"due_date": "2024-05-15"}), Task(id="undated")]
    rules = due_date_rules("no_due_date")
    assert [task.id for task in apply_filters(tasks, rules)] == ["undated"]


def test_set_due_filter_swaps_and_clears_preset() -> None:
    reference = date(2024, 5, 15)
    filters = set_due_filter([], "today", reference=reference)
    filters = set_due_filter(filters, "overdue", reference=reference)

    assert [rule.id for rule in filters] == [f"{DUE_FILTER_PREFIX}overdue"]
    assert set_due_filter(filters, None) == []
