from __future__ import annotations

import pytest

from taskboard.schemas.tasks import Task
from taskboard.schemas.views import SortConfig
from taskboard.services.sorting import apply_sorts, compare_values


def _tasks(*values: object) -> list[Task]:
    return [
        Task(id=str(index), field_values={} if value is None else {"f": value})
        for index, value in enumerate(values)
    ]


def _ids(tasks: list[Task]) -> list[str]:
    return [task.id for task in tasks]


def test_numbers_compare_numerically() -> None:
    tasks = _tasks(10, 9, 100)
    assert _ids(apply_sorts(tasks, [SortConfig(field_id="f")])) == ["1", "0", "2"]


def test_strings_compare_case_insensitively() -> None:
    tasks = _tasks("banana", "Apple", "cherry")
    assert _ids(apply_sorts(tasks, [SortConfig(field_id="f")])) == ["1", "0", "2"]


def test_compare_values_is_three_way() -> None:
    assert compare_values(1, 2) == -1
    assert compare_values(2, 2) == 0
    assert compare_values("b", "a") == 1


@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_missing_values_sort_last_in_both_directions(direction: str) -> None:
    tasks = _tasks(None, 3, None, 1, 2)

    ordered = apply_sorts(tasks, [SortConfig(field_id="f", direction=direction)])

    assert _ids(ordered)[-2:] == ["0", "2"]
    present = [task.field_values["f"] for task in ordered[:3]]
    assert present == sorted(present, reverse=direction == "desc")


@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_ties_keep_input_order(direction: str) -> None:
    tasks = _tasks("b", "a", "b", "a", "b")

    ordered = apply_sorts(tasks, [SortConfig(field_id="f", direction=direction)])

    a_ids = [task.id for task in ordered if task.field_values["f"] == "a"]
    b_ids = [task.id for task in ordered if task.field_values["f"] == "b"]
    assert a_ids == ["1", "3"]
    assert b_ids == ["0", "2", "4"]


def test_secondary_key_breaks_ties() -> None:
    tasks = [
        Task(id="1", field_values={"p": "high", "d": "2024-03-01"}),
        Task(id="2", field_values={"p": "high", "d": "2024-01-01"}),
        Task(id="3", field_values={"p": "low", "d": "2024-02-01"}),
    ]
    sorts = [SortConfig(field_id="p"), SortConfig(field_id="d", direction="desc")]

    assert _ids(apply_sorts(tasks, sorts)) == ["1", "2", "3"]


def test_no_sorts_returns_input_order() -> None:
    tasks = _tasks(3, 1, 2)
    result = apply_sorts(tasks, [])
    assert result == tasks
    assert result is not tasks
