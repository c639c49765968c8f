"""Select-option lifecycle: reconciliation after edits and inference on import.

Select values store the option *id*; multi_select values store option
*labels* (free-text tags are allowed), so the two field types reconcile
differently when their option lists change.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from taskboard.core.ids import generate_id
from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.schemas.tasks import Task
from taskboard.services.sanitize import DEFAULT_OPTION_COLOR
from taskboard.services.values import dedupe, split_tokens


@dataclass(frozen=True, slots=True)
class OptionChanges:
    """Differences between two option lists of one field."""

    removed_ids: frozenset[str]
    removed_labels: frozenset[str]
    renamed_labels: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.removed_ids and not self.renamed_labels


def diff_options(
    previous: Sequence[SelectOption],
    current: Sequence[SelectOption],
) -> OptionChanges:
    """Compare option lists by id: missing ids are removals, changed labels renames."""
    new_labels = {option.id: option.label for option in current}
    removed_ids: set[str] = set()
    removed_labels: set[str] = set()
    renamed: dict[str, str] = {}
    for option in previous:
        if option.id not in new_labels:
            removed_ids.add(option.id)
            removed_labels.add(option.label)
        elif new_labels[option.id] != option.label:
            renamed[option.label] = new_labels[option.id]
    return OptionChanges(
        removed_ids=frozenset(removed_ids),
        removed_labels=frozenset(removed_labels),
        renamed_labels=renamed,
    )


def _rewrite_labels(values: Iterable[str], changes: OptionChanges) -> list[str]:
    renamed = (changes.renamed_labels.get(value, value) for value in values)
    return dedupe(value for value in renamed if value not in changes.removed_labels)


def reconcile_task_values(
    field_def: FieldDefinition,
    tasks: Iterable[Task],
    changes: OptionChanges,
) -> int:
    """Apply option removals/renames to every task's value for `field_def`.

    select: values equal to a removed id are cleared.
    multi_select: labels are renamed, removed labels dropped, duplicates
    collapsed; an empty result clears the key.

    Returns the number of tasks whose value changed.
    """
    if changes.is_empty:
        return 0
    touched = 0
    for task in tasks:
        if field_def.id not in task.field_values:
            continue
        current = task.field_values[field_def.id]
        if field_def.type == "select":
            if isinstance(current, str) and current in changes.removed_ids:
                del task.field_values[field_def.id]
                touched += 1
        elif field_def.type == "multi_select":
            if isinstance(current, str):
                current = [current]
            if not isinstance(current, list):
                continue
            rewritten = _rewrite_labels((str(item) for item in current), changes)
            if rewritten == current:
                continue
            if rewritten:
                task.field_values[field_def.id] = rewritten
            else:
                del task.field_values[field_def.id]
            touched += 1
    return touched


def ensure_option(field_def: FieldDefinition, raw_label: str) -> SelectOption | None:
    """Return the option matching `raw_label` by id or label, creating one if needed.

    New options get a generated id, the trimmed label and the default color,
    and are appended to the field's option list.
    """
    label = raw_label.strip()
    if not label:
        return None
    option = field_def.find_option(label)
    if option is not None:
        return option
    option = SelectOption(id=generate_id(), label=label, color=DEFAULT_OPTION_COLOR)
    if field_def.options is None:
        field_def.options = []
    field_def.options.append(option)
    return option


def infer_option_value(field_def: FieldDefinition, raw: object) -> object | None:
    """Map a raw imported value onto the field's options; None means empty.

    select values become option ids; multi_select values become a list of
    labels. Unknown tokens synthesize options on `field_def`.
    """
    if field_def.type == "select":
        if raw is None or isinstance(raw, (list, dict)):
            return None
        option = ensure_option(field_def, str(raw))
        return option.id if option is not None else None
    if field_def.type == "multi_select":
        labels: list[str] = []
        for token in split_tokens(raw):
            option = ensure_option(field_def, token)
            if option is not None:
                labels.append(option.label)
        return dedupe(labels) or None
    return raw
