"""Whole-dataset export, replacement and explicit save.

`/dataset` speaks the persisted camelCase JSON contract so a saved file can
be round-tripped through the API unchanged; `/dataset/sheets` exchanges the
same data as an `.xlsx` workbook.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from sqlmodel import SQLModel

from taskboard.adapters.autosave import AutoSaver
from taskboard.adapters.base import DataAdapter
from taskboard.api.deps import get_adapter, get_autosaver, get_workspace
from taskboard.codecs.json_codec import loads_dataset
from taskboard.codecs.sheets import dumps_workbook, loads_workbook, write_sheets
from taskboard.core.logging import get_logger
from taskboard.schemas.dataset import TaskDataSet
from taskboard.services.workspace import Workspace

logger = get_logger(__name__)

router = APIRouter(prefix="/dataset", tags=["dataset"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLSX_FILENAME = "tasks.xlsx"

WORKSPACE_DEP = Depends(get_workspace)
ADAPTER_DEP = Depends(get_adapter)
AUTOSAVER_DEP = Depends(get_autosaver)


class DatasetSaveRead(SQLModel):
    saved: bool
    data_source: str
    last_saved: datetime | None = None


def _snapshot(workspace: Workspace, adapter: DataAdapter | None) -> TaskDataSet:
    return workspace.get_dataset(adapter.type if adapter is not None else "memory")


def _replace(
    workspace: Workspace,
    dataset: TaskDataSet,
    autosaver: AutoSaver | None,
) -> TaskDataSet:
    workspace.load_dataset(dataset)
    if autosaver is not None:
        autosaver.flush()
    return workspace.get_dataset(dataset.metadata.source)


@router.get("")
async def export_dataset(
    workspace: Workspace = WORKSPACE_DEP,
    adapter: DataAdapter | None = ADAPTER_DEP,
) -> JSONResponse:
    """The current fields, tasks and views in the persisted JSON shape."""
    return JSONResponse(_snapshot(workspace, adapter).to_wire())


@router.put("")
async def replace_dataset(
    request: Request,
    workspace: Workspace = WORKSPACE_DEP,
    autosaver: AutoSaver | None = AUTOSAVER_DEP,
) -> JSONResponse:
    """Validate a dataset document and make it the workspace contents."""
    dataset = loads_dataset(await request.body())
    return JSONResponse(_replace(workspace, dataset, autosaver).to_wire())


@router.get("/sheets")
async def export_sheets(
    workspace: Workspace = WORKSPACE_DEP,
    adapter: DataAdapter | None = ADAPTER_DEP,
) -> Response:
    """An `.xlsx` workbook: a task sheet plus hidden field and view sheets."""
    payload = dumps_workbook(write_sheets(_snapshot(workspace, adapter)))
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{XLSX_FILENAME}"'},
    )


@router.put("/sheets")
async def replace_from_sheets(
    request: Request,
    workspace: Workspace = WORKSPACE_DEP,
    autosaver: AutoSaver | None = AUTOSAVER_DEP,
) -> JSONResponse:
    """Rebuild the workspace from a workbook, inferring fields when needed."""
    dataset = loads_workbook(await request.body())
    return JSONResponse(_replace(workspace, dataset, autosaver).to_wire())


@router.post("/save", response_model=DatasetSaveRead)
async def save_dataset(
    workspace: Workspace = WORKSPACE_DEP,
    adapter: DataAdapter | None = ADAPTER_DEP,
) -> DatasetSaveRead:
    """Persist the workspace through the configured data source now."""
    if adapter is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No data source is connected",
        )
    adapter.save(_snapshot(workspace, adapter))
    workspace.mark_clean()
    logger.info("dataset.saved", extra={"data_source": adapter.type})
    return DatasetSaveRead(saved=True, data_source=adapter.type, last_saved=adapter.last_saved)
