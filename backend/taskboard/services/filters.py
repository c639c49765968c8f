"""Filter rule evaluation.

The evaluator applies loose, display-oriented coercions so any operator can
be evaluated against any stored value; which operators make sense for a
field type is decided by `quick_filters.operators_for_type`.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from typing import Final

from taskboard.core.time import parse_iso_datetime
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import FilterRule
from taskboard.services.values import is_empty_value


def stringify(value: object) -> str:
    """Render a stored or rule value as text for comparisons; missing is ``""``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(item) for item in value)
    return str(value)


def to_number(value: object) -> float:
    """Numeric view of a value; NaN when it has none (NaN compares false)."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def _compare_dates(value: object, target: object, op: Callable[[object, object], bool]) -> bool:
    if not value or not target:
        return False
    left = parse_iso_datetime(stringify(value))
    right = parse_iso_datetime(stringify(target))
    if left is None or right is None:
        return False
    return op(left, right)


def _tokens(target: object) -> list[str]:
    return [token.strip() for token in stringify(target).split(",")]


def _contains(value: object, target: object) -> bool:
    return stringify(target).lower() in stringify(value).lower()


def _in(value: object, target: object) -> bool:
    if not isinstance(value, list):
        return False
    members = {stringify(item) for item in value}
    return any(token in members for token in _tokens(target))


def _not_in(value: object, target: object) -> bool:
    if not isinstance(value, list):
        return True
    return not _in(value, target)


_OPERATORS: Final[dict[str, Callable[[object, object], bool]]] = {
    "is_empty": lambda value, _target: is_empty_value(value),
    "is_not_empty": lambda value, _target: not is_empty_value(value),
    "equals": lambda value, target: stringify(value) == stringify(target),
    "not_equals": lambda value, target: stringify(value) != stringify(target),
    "contains": _contains,
    "not_contains": lambda value, target: not _contains(value, target),
    "greater_than": lambda value, target: to_number(value) > to_number(target),
    "less_than": lambda value, target: to_number(value) < to_number(target),
    "before": lambda value, target: _compare_dates(value, target, lambda a, b: a < b),
    "after": lambda value, target: _compare_dates(value, target, lambda a, b: a > b),
    "in": _in,
    "not_in": _not_in,
}


def evaluate(task: Task, rule: FilterRule) -> bool:
    """Return whether `task` satisfies `rule`.

    A missing value is treated as empty; unknown operators pass.
    """
    predicate = _OPERATORS.get(rule.operator)
    if predicate is None:
        return True
    return predicate(task.value(rule.field_id), rule.value)


def passes_all(task: Task, rules: Iterable[FilterRule]) -> bool:
    """AND-combination of `rules` (an empty rule set passes everything)."""
    return all(evaluate(task, rule) for rule in rules)


def apply_filters(tasks: Sequence[Task], rules: Sequence[FilterRule]) -> list[Task]:
    """Keep the tasks that pass every rule, in input order."""
    if not rules:
        return list(tasks)
    return [task for task in tasks if passes_all(task, rules)]
