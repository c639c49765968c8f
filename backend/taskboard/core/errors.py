"""Exception types raised by the taskboard engine and its codecs.

Only malformed input raises. Missing ids and refused actions (deleting a
system field or the last view) are no-ops reported through return values,
never exceptions.
"""

from __future__ import annotations


class TaskboardError(Exception):
    """Base class for all taskboard errors."""


class DataSetValidationError(TaskboardError, ValueError):
    """Raised when an imported dataset or sheet payload is malformed."""


class FieldValueError(TaskboardError, ValueError):
    """Raised when a value cannot be normalized for its field type."""

    def __init__(self, field_id: str, message: str) -> None:
        super().__init__(f"{field_id}: {message}")
        self.field_id = field_id


class DataSourceError(TaskboardError):
    """Raised by persistence adapters when a data source cannot be read or written."""
