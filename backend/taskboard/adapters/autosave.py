"""Save-on-change wiring between a workspace and a data adapter."""

from __future__ import annotations

from collections.abc import Callable

from taskboard.adapters.base import DataAdapter
from taskboard.core.errors import TaskboardError
from taskboard.core.logging import get_logger
from taskboard.services.workspace import Workspace

logger = get_logger(__name__)


class AutoSaver:
    """Persist the workspace after every mutation.

    Saving is fire-and-forget: a failed save is logged and leaves the
    workspace dirty, it never undoes the mutation that triggered it.
    """

    def __init__(self, workspace: Workspace, adapter: DataAdapter) -> None:
        self.workspace = workspace
        self.adapter = adapter
        self.failures = 0
        self._unsubscribe: Callable[[], None] | None = workspace.subscribe(self._on_change)

    def _on_change(self, kind: str) -> None:
        if kind == "load" or not self.workspace.is_dirty:
            return
        self.flush()

    def flush(self) -> bool:
        """Save now; returns whether the save succeeded."""
        try:
            self.adapter.save(self.workspace.get_dataset(self.adapter.type))
        except (OSError, TaskboardError) as exc:
            self.failures += 1
            logger.warning(
                "dataset.autosave.failed",
                extra={"adapter": self.adapter.type, "error": str(exc)},
            )
            return False
        self.workspace.mark_clean()
        return True

    def close(self) -> None:
        """Stop listening for changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
