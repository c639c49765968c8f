"""Multi-key task comparator and stable sort."""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence
from functools import cmp_to_key

from taskboard.core.config import settings
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import SortConfig
from taskboard.services.filters import stringify


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _collation_key(text: str) -> tuple[str, str]:
    if settings.sort_locale_fold:
        return unicodedata.normalize("NFKC", text).casefold(), text
    return text, text


def compare_values(left: object, right: object) -> int:
    """Ascending three-way comparison of two present (non-None) values."""
    if _is_number(left) and _is_number(right):
        return (left > right) - (left < right)  # type: ignore[operator]
    left_key = _collation_key(stringify(left))
    right_key = _collation_key(stringify(right))
    return (left_key > right_key) - (left_key < right_key)


def compare_tasks(left: Task, right: Task, sorts: Sequence[SortConfig]) -> int:
    """Compare two tasks key by key; missing values sort last in either direction."""
    for sort in sorts:
        left_value = left.value(sort.field_id)
        right_value = right.value(sort.field_id)
        if left_value is None and right_value is None:
            continue
        if left_value is None:
            return 1
        if right_value is None:
            return -1
        result = compare_values(left_value, right_value)
        if result:
            return result if sort.direction == "asc" else -result
    return 0


def apply_sorts(tasks: Sequence[Task], sorts: Sequence[SortConfig]) -> list[Task]:
    """Return `tasks` ordered by `sorts`; ties keep their input order."""
    if not sorts:
        return list(tasks)
    return sorted(tasks, key=cmp_to_key(lambda a, b: compare_tasks(a, b, sorts)))
