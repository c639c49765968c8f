"""Field schema registry: the single source of truth for field definitions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Final

from taskboard.core.ids import generate_id
from taskboard.core.logging import get_logger
from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.services.options import OptionChanges, diff_options

logger = get_logger(__name__)

# Keys a patch may never change once a field exists.
IMMUTABLE_FIELD_KEYS: Final[frozenset[str]] = frozenset(
    {"id", "type", "is_system", "isSystem"},
)
_ASSIGNED_ON_CREATE: Final[frozenset[str]] = frozenset(
    {"id", "order", "visible", "is_system", "isSystem"},
)


class FieldRegistry:
    """Ordered collection of `FieldDefinition` objects keyed by id.

    Missing ids are no-ops reported through `None`/`False` return values.
    """

    def __init__(self, fields: Iterable[FieldDefinition] = ()) -> None:
        self._fields: list[FieldDefinition] = list(fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, field_id: object) -> bool:
        return any(field.id == field_id for field in self._fields)

    def replace_all(self, fields: Iterable[FieldDefinition]) -> None:
        """Swap in a whole schema (dataset load, replace import)."""
        self._fields = list(fields)

    def get(self, field_id: str) -> FieldDefinition | None:
        """Return the field with `field_id`, if any."""
        for field in self._fields:
            if field.id == field_id:
                return field
        return None

    def find_by_name(self, name: str) -> FieldDefinition | None:
        """Return the first field whose display name equals `name`."""
        for field in self._fields:
            if field.name == name:
                return field
        return None

    def all(self) -> list[FieldDefinition]:
        """Fields in storage order."""
        return list(self._fields)

    def ordered(self) -> list[FieldDefinition]:
        """Fields in display order (by `order`, ties keep storage order)."""
        return sorted(self._fields, key=lambda field: field.order)

    def ids(self) -> set[str]:
        return {field.id for field in self._fields}

    def next_order(self) -> int:
        """One past the highest existing `order` (0 for an empty registry)."""
        return max((field.order for field in self._fields), default=-1) + 1

    def add_field(self, draft: Mapping[str, Any] | FieldDefinition) -> FieldDefinition:
        """Create a user field from `draft`, assigning a fresh id and the next order.

        New fields start visible and are never system fields.
        """
        if isinstance(draft, FieldDefinition):
            attributes = draft.model_dump(exclude=set(_ASSIGNED_ON_CREATE))
        else:
            attributes = {
                key: value for key, value in draft.items() if key not in _ASSIGNED_ON_CREATE
            }
        field = FieldDefinition.model_validate(
            {
                **attributes,
                "id": generate_id(),
                "order": self.next_order(),
                "visible": True,
                "is_system": False,
            },
        )
        self._fields.append(field)
        logger.debug(
            "field.added",
            extra={"field_id": field.id, "field_type": field.type, "order": field.order},
        )
        return field

    def merge_field(self, field: FieldDefinition) -> bool:
        """Append an imported field unless its id or name is already taken."""
        if field.id in self or self.find_by_name(field.name) is not None:
            return False
        self._fields.append(field.model_copy(update={"order": self.next_order()}))
        return True

    def update_field(
        self,
        field_id: str,
        patch: Mapping[str, Any],
    ) -> FieldDefinition | None:
        """Shallow-merge `patch` into the field; id, type and system flag are immutable."""
        index = self._index(field_id)
        if index is None:
            return None
        dropped = sorted(key for key in patch if key in IMMUTABLE_FIELD_KEYS)
        if dropped:
            logger.warning(
                "field.update.immutable_keys_dropped",
                extra={"field_id": field_id, "keys": dropped},
            )
        current = self._fields[index]
        changes = {key: value for key, value in patch.items() if key not in IMMUTABLE_FIELD_KEYS}
        updated = FieldDefinition.model_validate({**current.model_dump(), **changes})
        self._fields[index] = updated
        logger.debug("field.updated", extra={"field_id": field_id, "keys": sorted(changes)})
        return updated

    def update_field_options(
        self,
        field_id: str,
        options: Sequence[SelectOption],
    ) -> OptionChanges | None:
        """Replace the option list and return what changed.

        Returns None when the field is missing or does not carry options.
        Task values are reconciled by the caller.
        """
        field = self.get(field_id)
        if field is None or not field.has_options:
            return None
        changes = diff_options(field.options or [], options)
        field.options = list(options)
        logger.debug(
            "field.options.replaced",
            extra={
                "field_id": field_id,
                "removed": len(changes.removed_ids),
                "renamed": len(changes.renamed_labels),
            },
        )
        return changes

    def delete_field(self, field_id: str) -> FieldDefinition | None:
        """Remove a user field; system fields are refused."""
        index = self._index(field_id)
        if index is None:
            return None
        field = self._fields[index]
        if field.is_system:
            logger.warning("field.delete.refused", extra={"field_id": field_id})
            return None
        del self._fields[index]
        logger.debug("field.deleted", extra={"field_id": field_id})
        return field

    def reorder_fields(self, ordered_ids: Sequence[str]) -> int:
        """Set each listed field's `order` to its index; returns how many moved."""
        moved = 0
        for index, field_id in enumerate(ordered_ids):
            field = self.get(field_id)
            if field is not None:
                field.order = index
                moved += 1
        logger.debug("field.reordered", extra={"count": moved})
        return moved

    def _index(self, field_id: str) -> int | None:
        for index, field in enumerate(self._fields):
            if field.id == field_id:
                return index
        return None
