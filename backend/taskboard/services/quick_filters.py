"""Quick filters: preset batches of ordinary filter rules with reserved ids.

A quick filter never introduces a new mechanism. It is a set of `FilterRule`
objects whose ids share a reserved prefix, so a whole batch can be swapped
without touching the rules a user added by hand.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Final

from taskboard.core.time import today as utc_today
from taskboard.schemas.fields import FieldType
from taskboard.schemas.views import DuePreset, FilterOperator, FilterRule
from taskboard.services.defaults import (
    DONE_STATUS_ID,
    HIDE_DONE_FILTER_ID,
    SystemFieldIds,
    hide_done_rule,
)

DUE_FILTER_PREFIX: Final[str] = "quick-due-"
DUE_PRESETS: Final[tuple[DuePreset, ...]] = (
    "overdue",
    "today",
    "this_week",
    "next_7_days",
    "no_due_date",
)

_OPERATORS_BY_TYPE: Final[dict[str, tuple[FilterOperator, ...]]] = {
    "text": ("contains", "not_contains", "equals", "not_equals", "is_empty", "is_not_empty"),
    "person": ("contains", "not_contains", "equals", "not_equals", "is_empty", "is_not_empty"),
    "url": ("contains", "not_contains", "equals", "not_equals", "is_empty", "is_not_empty"),
    "number": ("equals", "not_equals", "greater_than", "less_than", "is_empty", "is_not_empty"),
    "progress": ("equals", "not_equals", "greater_than", "less_than", "is_empty", "is_not_empty"),
    "select": ("equals", "not_equals", "is_empty", "is_not_empty"),
    "multi_select": ("in", "not_in", "is_empty", "is_not_empty"),
    "date": ("equals", "before", "after", "is_empty", "is_not_empty"),
    "checkbox": ("equals",),
}
_FALLBACK_OPERATORS: Final[tuple[FilterOperator, ...]] = (
    "equals",
    "not_equals",
    "is_empty",
    "is_not_empty",
)


def operators_for_type(field_type: FieldType | str) -> list[FilterOperator]:
    """Operators offered for a field type; the first entry is the default."""
    return list(_OPERATORS_BY_TYPE.get(field_type, _FALLBACK_OPERATORS))


def apply_quick_filters(
    filters: Sequence[FilterRule],
    prefix: str,
    rules: Sequence[FilterRule],
) -> list[FilterRule]:
    """Replace every rule whose id starts with `prefix` by `rules`."""
    kept = [rule for rule in filters if not rule.id.startswith(prefix)]
    return [*kept, *rules]


def _is_hide_done(rule: FilterRule) -> bool:
    return (
        rule.field_id == SystemFieldIds.STATUS
        and rule.operator == "not_equals"
        and rule.value == DONE_STATUS_ID
    )


def has_hide_done(filters: Sequence[FilterRule]) -> bool:
    """Whether some rule already hides completed tasks."""
    return any(_is_hide_done(rule) for rule in filters)


def set_hide_done(filters: Sequence[FilterRule], *, enabled: bool) -> list[FilterRule]:
    """Drop every "not done" rule, then add the canonical one back if `enabled`."""
    kept = [rule for rule in filters if not _is_hide_done(rule) and rule.id != HIDE_DONE_FILTER_ID]
    if enabled:
        kept.append(hide_done_rule())
    return kept


def _rule(suffix: str, operator: FilterOperator, value: str | None = None) -> FilterRule:
    return FilterRule(
        id=f"{DUE_FILTER_PREFIX}{suffix}",
        field_id=SystemFieldIds.DUE_DATE,
        operator=operator,
        value=value,
    )


def _range_rules(name: str, start: date, end: date) -> list[FilterRule]:
    # `after` is strict, so the lower bound is the last millisecond before `start`.
    lower = f"{(start - timedelta(days=1)).isoformat()}T23:59:59.999Z"
    return [
        _rule(f"{name}-from", "after", lower),
        _rule(f"{name}-until", "before", end.isoformat()),
    ]


def due_date_rules(preset: DuePreset, *, reference: date | None = None) -> list[FilterRule]:
    """Expand a due-date preset into rules on the `due_date` field.

    Date ranges are half-open: `[start, end)`.
    """
    current = reference or utc_today()
    if preset == "overdue":
        return [_rule("overdue", "before", current.isoformat())]
    if preset == "today":
        return _range_rules("today", current, current + timedelta(days=1))
    if preset == "this_week":
        monday = current - timedelta(days=current.weekday())
        return _range_rules("this_week", monday, monday + timedelta(days=7))
    if preset == "next_7_days":
        return _range_rules("next_7_days", current, current + timedelta(days=7))
    if preset == "no_due_date":
        return [_rule("no_due_date", "is_empty")]
    raise ValueError(f"unknown due-date preset: {preset}")


def set_due_filter(
    filters: Sequence[FilterRule],
    preset: DuePreset | None,
    *,
    reference: date | None = None,
) -> list[FilterRule]:
    """Swap the due-date quick filter batch; `None` clears it."""
    rules = due_date_rules(preset, reference=reference) if preset is not None else []
    return apply_quick_filters(filters, DUE_FILTER_PREFIX, rules)
