"""The contract every persistence adapter implements."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from taskboard.schemas.dataset import DataSourceType, TaskDataSet


@dataclass(frozen=True, slots=True)
class DataSourceConnection:
    """What an adapter is connected to, for display."""

    type: DataSourceType
    name: str


class DataAdapter(Protocol):
    """Loads and saves complete datasets; no partial reads or writes."""

    type: DataSourceType

    def connect(self) -> DataSourceConnection: ...

    def load(self) -> TaskDataSet: ...

    def save(self, dataset: TaskDataSet) -> None: ...

    def is_connected(self) -> bool: ...

    def disconnect(self) -> None: ...

    @property
    def last_saved(self) -> datetime | None: ...
