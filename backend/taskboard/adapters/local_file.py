"""Dataset files on the local filesystem.

Files ending in ``.xlsx`` are workbooks (see `taskboard.codecs.sheets`);
any other file holds the JSON dataset.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Final, Literal

from taskboard.adapters.base import DataSourceConnection
from taskboard.codecs.json_codec import dumps_dataset, loads_dataset
from taskboard.codecs.sheets import dumps_workbook, loads_workbook, write_sheets
from taskboard.core.errors import DataSourceError
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.schemas.dataset import DataSourceType, TaskDataSet

logger = get_logger(__name__)

SHEETS_SUFFIX: Final[str] = ".xlsx"
FileFormat = Literal["json", "sheets"]


def file_format_for(path: Path) -> FileFormat:
    """Pick the codec for `path` from its name."""
    return "sheets" if path.name.lower().endswith(SHEETS_SUFFIX) else "json"


class LocalFileAdapter:
    """Reads and writes one dataset file; writes replace the file atomically."""

    type: DataSourceType = "local"

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.file_format: FileFormat = file_format_for(self.path)
        self._connected = False
        self._saved_at: datetime | None = None

    def connect(self) -> DataSourceConnection:
        self._connected = True
        return DataSourceConnection(type="local", name=self.path.name)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> TaskDataSet:
        """Read and validate the file.

        Raises `DataSourceError` when not connected or unreadable, and
        `DataSetValidationError` when the content is malformed.
        """
        if not self._connected:
            raise DataSourceError("No file is connected")
        try:
            payload = self.path.read_bytes()
        except OSError as exc:
            raise DataSourceError(f"Could not read {self.path}: {exc.strerror}") from exc
        if self.file_format == "sheets":
            dataset = loads_workbook(payload)
        else:
            dataset = loads_dataset(payload)
        logger.info(
            "dataset.file.loaded",
            extra={"path": str(self.path), "format": self.file_format, "tasks": len(dataset.tasks)},
        )
        return dataset

    def save(self, dataset: TaskDataSet) -> None:
        """Write through a sibling temp file and swap it into place."""
        if self.file_format == "sheets":
            payload = dumps_workbook(write_sheets(dataset))
        else:
            payload = dumps_dataset(dataset).encode("utf-8")
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise DataSourceError(f"Could not write {self.path}: {exc.strerror}") from exc
        self._saved_at = utcnow()
        logger.debug("dataset.file.saved", extra={"path": str(self.path), "bytes": len(payload)})

    def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self._connected = False
        self._saved_at = None

    @property
    def last_saved(self) -> datetime | None:
        return self._saved_at
