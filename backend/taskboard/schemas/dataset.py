"""The persisted dataset contract shared by every adapter and codec."""

from __future__ import annotations

from typing import Final, Literal

from pydantic import Field

from taskboard.core.time import utc_isoformat
from taskboard.schemas.common import CamelModel
from taskboard.schemas.fields import FieldDefinition
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import ViewConfig

DATASET_VERSION: Final[str] = "1.0.0"
DataSourceType = Literal["local", "sharepoint", "memory"]
DATA_SOURCE_TYPES: Final[tuple[DataSourceType, ...]] = ("local", "sharepoint", "memory")


class DataSetMetadata(CamelModel):
    """Provenance of a dataset snapshot."""

    last_modified: str = Field(default_factory=utc_isoformat)
    source: DataSourceType = "local"


class TaskDataSet(CamelModel):
    """Fields, tasks and view configs as stored on disk."""

    version: str = DATASET_VERSION
    fields: list[FieldDefinition] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    view_configs: list[ViewConfig] = Field(default_factory=list)
    metadata: DataSetMetadata = Field(default_factory=DataSetMetadata)
