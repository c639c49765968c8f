"""Structural validation of untrusted dataset payloads.

This is the only gate between imported data and the engine: the root shape is
checked strictly (errors abort the import), while individual entries are
repaired where possible. Task value keys that are not ids of the validated
field list are dropped silently.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from pydantic import ValidationError

from taskboard.core.errors import DataSetValidationError
from taskboard.core.logging import get_logger
from taskboard.core.time import utc_isoformat
from taskboard.schemas.dataset import (
    DATA_SOURCE_TYPES,
    DataSetMetadata,
    TaskDataSet,
)
from taskboard.schemas.fields import FieldDefinition
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import ViewConfig
from taskboard.services.sanitize import is_safe_object_key

logger = get_logger(__name__)

MAX_FILE_SIZE: Final[int] = 50 * 1024 * 1024


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def check_payload_size(size: int) -> None:
    """Reject payloads larger than `MAX_FILE_SIZE` bytes."""
    if size > MAX_FILE_SIZE:
        msg = f"Invalid data: file exceeds {MAX_FILE_SIZE // (1024 * 1024)} MB"
        raise DataSetValidationError(msg)


def validate_field_definition(raw: object) -> FieldDefinition:
    """Validate one field definition entry."""
    if not isinstance(raw, Mapping):
        raise DataSetValidationError("Invalid data: field definition is not an object")
    field_id = raw.get("id")
    if not isinstance(field_id, str) or not isinstance(raw.get("name"), str):
        raise DataSetValidationError("Invalid data: field definition is missing id/name/type")
    if not isinstance(raw.get("type"), str):
        raise DataSetValidationError("Invalid data: field definition is missing id/name/type")
    if not is_safe_object_key(field_id):
        raise DataSetValidationError("Invalid data: field id contains unsupported characters")
    try:
        return FieldDefinition.model_validate(dict(raw))
    except ValidationError as exc:
        msg = f"Invalid data: field definition {field_id!r} is malformed"
        raise DataSetValidationError(msg) from exc


def validate_task(raw: object, allowed_field_ids: set[str]) -> Task:
    """Validate one task entry, dropping value keys outside `allowed_field_ids`."""
    if not isinstance(raw, Mapping):
        raise DataSetValidationError("Invalid data: task is not an object")
    task_id = raw.get("id")
    if isinstance(task_id, int) and not isinstance(task_id, bool):
        task_id = str(task_id)
    if not isinstance(task_id, str):
        raise DataSetValidationError("Invalid data: task is missing an id")
    raw_values = _first(raw, "fieldValues", "field_values")
    if not isinstance(raw_values, Mapping):
        raise DataSetValidationError("Invalid data: task is missing fieldValues")

    values = {
        key: value
        for key, value in raw_values.items()
        if is_safe_object_key(key) and key in allowed_field_ids
    }
    dropped = len(raw_values) - len(values)
    if dropped:
        logger.debug(
            "dataset.validate.dropped_keys",
            extra={"task_id": task_id, "dropped": dropped},
        )
    created_at = _first(raw, "createdAt", "created_at")
    updated_at = _first(raw, "updatedAt", "updated_at")
    return Task(
        id=task_id,
        field_values=values,
        created_at=created_at if isinstance(created_at, str) else utc_isoformat(),
        updated_at=updated_at if isinstance(updated_at, str) else utc_isoformat(),
    )


def is_valid_view_config(raw: object) -> bool:
    """Minimal structural check applied before parsing a view config."""
    return (
        isinstance(raw, Mapping)
        and isinstance(raw.get("id"), str)
        and isinstance(raw.get("type"), str)
        and isinstance(raw.get("sorts"), list)
    )


def validate_view_configs(raw: object) -> list[ViewConfig]:
    """Parse view configs, skipping entries that are malformed."""
    if not isinstance(raw, list):
        return []
    views: list[ViewConfig] = []
    for entry in raw:
        if not is_valid_view_config(entry):
            continue
        try:
            views.append(ViewConfig.model_validate({"name": entry["id"], **entry}))
        except ValidationError:
            logger.warning("dataset.validate.view_skipped", extra={"view_id": entry["id"]})
    return views


def validate_metadata(raw: object) -> DataSetMetadata:
    """Return metadata, defaulting missing or unknown values."""
    if isinstance(raw, Mapping):
        source = raw.get("source")
        last_modified = _first(raw, "lastModified", "last_modified")
        return DataSetMetadata(
            last_modified=last_modified if isinstance(last_modified, str) else utc_isoformat(),
            source=source if source in DATA_SOURCE_TYPES else "local",
        )
    return DataSetMetadata(source="local")


def validate_dataset(data: object) -> TaskDataSet:
    """Validate an untrusted dataset payload.

    Raises `DataSetValidationError` for a non-object root, a non-string
    `version`, non-array `fields`/`tasks`, or malformed field/task entries.
    """
    if not isinstance(data, Mapping):
        raise DataSetValidationError("Invalid data: root is not an object")
    version = data.get("version")
    if not isinstance(version, str):
        raise DataSetValidationError("Invalid data: version is not a string")

    raw_fields = data.get("fields")
    if not isinstance(raw_fields, list):
        raise DataSetValidationError("Invalid data: fields is not an array")
    fields = [validate_field_definition(entry) for entry in raw_fields]
    allowed_field_ids = {field.id for field in fields}

    raw_tasks = data.get("tasks")
    if not isinstance(raw_tasks, list):
        raise DataSetValidationError("Invalid data: tasks is not an array")
    tasks = [validate_task(entry, allowed_field_ids) for entry in raw_tasks]

    return TaskDataSet(
        version=version,
        fields=fields,
        tasks=tasks,
        view_configs=validate_view_configs(_first(data, "viewConfigs", "view_configs")),
        metadata=validate_metadata(data.get("metadata")),
    )
