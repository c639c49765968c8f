"""Normalization of raw task values against their field type.

Every entry point that writes task values (task creation, edits, import)
passes through `normalize_value`, so stored values always have the shape
their field type implies:

========== ==========================================
type       stored shape
========== ==========================================
text       ``str``
url        ``str`` (http/https/mailto only)
number     ``int`` or ``float``
progress   ``int`` or ``float`` clamped to 0..100
checkbox   ``bool``
select     option id ``str``
multi      ``list[str]`` of labels
person     ``list[str]``
date       ISO date or datetime ``str``
========== ==========================================

`None` means "empty": callers delete the key instead of storing it.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any, Final

from taskboard.core.errors import FieldValueError
from taskboard.core.time import parse_iso_datetime
from taskboard.schemas.fields import FieldDefinition
from taskboard.services.sanitize import sanitize_url

TRUE_TOKENS: Final[frozenset[str]] = frozenset({"true", "yes", "1", "done", "on"})
FALSE_TOKENS: Final[frozenset[str]] = frozenset({"false", "no", "0", "not done", "off"})
LIST_SEPARATOR_RE: Final[re.Pattern[str]] = re.compile(r"[,，]")


def is_empty_value(value: object) -> bool:
    """None, empty string and empty list are all "no value"."""
    return value is None or value == "" or (isinstance(value, list) and not value)


def split_tokens(raw: object) -> list[str]:
    """Split a comma-separated string (half- or full-width) or a list into trimmed tokens."""
    if raw is None:
        return []
    if isinstance(raw, str):
        parts: Iterable[object] = LIST_SEPARATOR_RE.split(raw)
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        parts = [raw]
    tokens: list[str] = []
    for part in parts:
        if part is None:
            continue
        token = str(part).strip()
        if token:
            tokens.append(token)
    return tokens


def dedupe(values: Iterable[str]) -> list[str]:
    """Drop repeated entries, keeping first occurrences in order."""
    return list(dict.fromkeys(values))


def _to_number(field: FieldDefinition, raw: object) -> int | float:
    if isinstance(raw, bool):
        raise FieldValueError(field.id, "must be a number")
    if isinstance(raw, (int, float)):
        number: int | float = raw
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError as exc:
                raise FieldValueError(field.id, "must be a number") from exc
    else:
        raise FieldValueError(field.id, "must be a number")
    if isinstance(number, float) and not math.isfinite(number):
        raise FieldValueError(field.id, "must be a finite number")
    return number


def _to_bool(field: FieldDefinition, raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    raise FieldValueError(field.id, "must be true or false")


def _to_date(field: FieldDefinition, raw: object) -> str:
    if not isinstance(raw, str) or parse_iso_datetime(raw) is None:
        raise FieldValueError(field.id, "must be an ISO date string (YYYY-MM-DD)")
    return raw.strip()


def _to_select(field: FieldDefinition, raw: object) -> str:
    if not isinstance(raw, (str, int)) or isinstance(raw, bool):
        raise FieldValueError(field.id, "must be an option id")
    token = str(raw).strip()
    option = field.find_option(token)
    return option.id if option is not None else token


def _to_labels(field: FieldDefinition, raw: object) -> list[str]:
    if not isinstance(raw, (str, list, tuple)):
        raise FieldValueError(field.id, "must be a list of strings")
    labels: list[str] = []
    for token in split_tokens(raw):
        option = field.find_option(token) if field.has_options else None
        labels.append(option.label if option is not None else token)
    return dedupe(labels)


def normalize_value(field: FieldDefinition, raw: object) -> Any:
    """Coerce `raw` into the stored shape for `field`; None means empty.

    Raises `FieldValueError` when `raw` cannot represent a value of the type.
    """
    if is_empty_value(raw) or (isinstance(raw, str) and not raw.strip()):
        return None

    field_type = field.type
    if field_type == "text":
        if isinstance(raw, (dict, list)):
            raise FieldValueError(field.id, "must be a string")
        return str(raw)
    if field_type == "url":
        return sanitize_url(raw) or None
    if field_type == "number":
        return _to_number(field, raw)
    if field_type == "progress":
        return min(100, max(0, _to_number(field, raw)))
    if field_type == "checkbox":
        return _to_bool(field, raw)
    if field_type == "date":
        return _to_date(field, raw)
    if field_type == "select":
        return _to_select(field, raw)
    if field_type in {"multi_select", "person"}:
        return _to_labels(field, raw) or None
    return raw


def migrate_person_value(value: object) -> object:
    """Legacy datasets stored a person as a bare string; lists are current."""
    if isinstance(value, str):
        return [value]
    return value
