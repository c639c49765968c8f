from __future__ import annotations

from taskboard.schemas.tasks import Task
from taskboard.services.task_collection import TaskCollection


def _collection() -> TaskCollection:
    return TaskCollection(
        [
            Task(id="t1", field_values={"title": "One"}, created_at="x", updated_at="x"),
            Task(
                id="t2",
                field_values={"title": "Two", "notes": "n"},
                created_at="x",
                updated_at="x",
            ),
        ],
    )


def test_add_task_sets_matching_timestamps_and_sparse_values() -> None:
    tasks = TaskCollection()

    task = tasks.add_task({"title": "New", "notes": None})

    assert task.created_at == task.updated_at
    assert task.field_values == {"title": "New"}
    assert tasks.get(task.id) is task
    assert len(tasks) == 1


def test_add_task_ids_are_unique() -> None:
    tasks = TaskCollection()
    ids = {tasks.add_task().id for _ in range(50)}
    assert len(ids) == 50


def test_update_task_fields_bumps_updated_at_once() -> None:
    tasks = _collection()

    task = tasks.update_task_fields("t2", {"title": "Renamed", "notes": None})

    assert task is not None
    assert task.field_values == {"title": "Renamed"}
    assert task.updated_at != "x"
    assert task.created_at == "x"


def test_update_missing_task_is_a_no_op() -> None:
    tasks = _collection()
    assert tasks.update_task("missing", "title", "x") is None
    assert [task.field_values["title"] for task in tasks] == ["One", "Two"]


def test_delete_tasks_ignores_unknown_ids() -> None:
    tasks = _collection()

    assert tasks.delete_tasks(["t1", "missing"]) == 1
    assert tasks.delete_task("missing") is False
    assert [task.id for task in tasks] == ["t2"]


def test_remove_field_values_clears_every_task() -> None:
    tasks = _collection()

    assert tasks.remove_field_values("notes") == 1
    assert all("notes" not in task.field_values for task in tasks)


def test_import_append_remaps_ids() -> None:
    tasks = _collection()
    incoming = [Task(id="t1", field_values={"title": "Imported"})]

    imported = tasks.import_tasks(incoming, "append")

    assert len(tasks) == 3
    assert {task.id for task in imported}.isdisjoint({"t1", "t2"})
    assert imported[0].field_values == {"title": "Imported"}
    assert imported[0].field_values is not incoming[0].field_values


def test_import_replace_discards_existing_tasks() -> None:
    tasks = _collection()

    imported = tasks.import_tasks([Task(id="t3", field_values={"title": "Three"})], "replace")

    assert len(tasks) == 1
    assert tasks.all() == imported
    assert imported[0].id != "t3"
