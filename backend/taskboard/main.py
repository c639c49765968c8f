"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from taskboard.adapters.autosave import AutoSaver
from taskboard.adapters.base import DataAdapter
from taskboard.adapters.local_file import LocalFileAdapter
from taskboard.adapters.memory import MemoryAdapter
from taskboard.api import dataset, fields, health, projection, tasks, views
from taskboard.core.config import Settings, get_settings
from taskboard.core.error_handling import install_error_handling
from taskboard.core.logging import configure_logging, get_logger
from taskboard.services.workspace import Workspace

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


def open_data_source(settings: Settings) -> tuple[DataAdapter, Workspace]:
    """Connect the configured adapter and load its dataset into a new workspace.

    A missing local file starts from the default schema and is written out
    immediately so the next start finds it.
    """
    adapter: DataAdapter
    if settings.data_source == "local":
        local = LocalFileAdapter(settings.data_file)
        connection = local.connect()
        if local.exists():
            workspace = Workspace(local.load())
        else:
            workspace = Workspace(Workspace().get_dataset("local"))
            local.save(workspace.get_dataset("local"))
            logger.info("dataset.file.created", extra={"path": str(local.path)})
        adapter = local
    else:
        memory = MemoryAdapter(seed_demo_data=settings.seed_demo_data)
        connection = memory.connect()
        workspace = Workspace()
        workspace.load_dataset(memory.load(), upgrade_legacy=True)
        adapter = memory
    logger.info(
        "data_source.connected",
        extra={"data_source": connection.type, "source_name": connection.name},
    )
    return adapter, workspace


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Flush unsaved changes and detach the autosaver on shutdown."""
    yield
    autosaver: AutoSaver | None = getattr(app.state, "autosaver", None)
    workspace: Workspace | None = getattr(app.state, "workspace", None)
    if autosaver is not None:
        if workspace is not None and workspace.is_dirty:
            autosaver.flush()
        autosaver.close()
    logger.info("app.shutdown")


def create_app(
    *,
    workspace: Workspace | None = None,
    adapter: DataAdapter | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing `workspace` skips opening the configured data source; `adapter`
    is then used only for saving.
    """
    settings = settings or get_settings()
    configure_logging()
    if workspace is None:
        adapter, workspace = open_data_source(settings)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    install_error_handling(app)

    app.state.workspace = workspace
    app.state.adapter = adapter
    app.state.autosaver = (
        AutoSaver(workspace, adapter) if adapter is not None and settings.autosave else None
    )

    for module in (health, fields, tasks, views, projection, dataset):
        app.include_router(module.router, prefix=settings.api_prefix)

    logger.info(
        "app.started",
        extra={
            "environment": settings.environment,
            "data_source": adapter.type if adapter is not None else None,
            "autosave": app.state.autosaver is not None,
        },
    )
    return app
