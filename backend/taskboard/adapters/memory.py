"""In-memory data source serving the demo dataset."""

from __future__ import annotations

from datetime import datetime

from taskboard.adapters.base import DataSourceConnection
from taskboard.core.time import utc_isoformat, utcnow
from taskboard.schemas.dataset import DATASET_VERSION, DataSetMetadata, DataSourceType, TaskDataSet
from taskboard.services.defaults import create_default_fields, create_demo_tasks


class MemoryAdapter:
    """Keeps the last saved dataset in memory; nothing survives the process."""

    type: DataSourceType = "memory"

    def __init__(self, *, seed_demo_data: bool = True) -> None:
        self.seed_demo_data = seed_demo_data
        self._data: TaskDataSet | None = None
        self._connected = False
        self._saved_at: datetime | None = None

    def _demo_dataset(self) -> TaskDataSet:
        return TaskDataSet(
            version=DATASET_VERSION,
            fields=create_default_fields(),
            tasks=create_demo_tasks() if self.seed_demo_data else [],
            view_configs=[],
            metadata=DataSetMetadata(last_modified=utc_isoformat(), source="memory"),
        )

    def connect(self) -> DataSourceConnection:
        self._data = self._demo_dataset()
        self._connected = True
        return DataSourceConnection(type="memory", name="Demo data")

    def load(self) -> TaskDataSet:
        if self._data is None:
            self._data = self._demo_dataset()
            self._connected = True
        return self._data.model_copy(deep=True)

    def save(self, dataset: TaskDataSet) -> None:
        self._data = dataset.model_copy(deep=True)
        self._saved_at = utcnow()

    def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self._connected = False
        self._data = None
        self._saved_at = None

    @property
    def last_saved(self) -> datetime | None:
        return self._saved_at
