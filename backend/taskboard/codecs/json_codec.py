"""JSON dataset files."""

from __future__ import annotations

import json

from taskboard.core.errors import DataSetValidationError
from taskboard.schemas.dataset import TaskDataSet
from taskboard.services.validation import check_payload_size, validate_dataset


def dumps_dataset(dataset: TaskDataSet, *, indent: int | None = 2) -> str:
    """Render `dataset` in the persisted camelCase shape."""
    return json.dumps(dataset.to_wire(), ensure_ascii=False, indent=indent)


def loads_dataset(payload: str | bytes) -> TaskDataSet:
    """Decode and validate a JSON dataset file.

    Raises `DataSetValidationError` for oversized, undecodable or malformed input.
    """
    raw = payload.encode("utf-8") if isinstance(payload, str) else payload
    check_payload_size(len(raw))
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DataSetValidationError("Invalid data: file is not valid JSON") from exc
    return validate_dataset(data)
