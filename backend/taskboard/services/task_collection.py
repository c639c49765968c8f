"""Task storage with CRUD and bulk import."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Literal

from taskboard.core.ids import generate_id
from taskboard.core.logging import get_logger
from taskboard.core.time import utc_isoformat
from taskboard.schemas.tasks import Task

logger = get_logger(__name__)

ImportMode = Literal["append", "replace"]


def _apply_values(task: Task, values: Mapping[str, Any]) -> None:
    for field_id, value in values.items():
        if value is None:
            task.field_values.pop(field_id, None)
        else:
            task.field_values[field_id] = value


class TaskCollection:
    """Tasks in insertion order.

    Values handed to the mutators are stored as given; a `None` value deletes
    the key so `field_values` stays sparse.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: list[Task] = list(tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def replace_all(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)

    def all(self) -> list[Task]:
        """Tasks in insertion order."""
        return list(self._tasks)

    def get(self, task_id: str) -> Task | None:
        """Return the task with `task_id`, if any."""
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def add_task(self, field_values: Mapping[str, Any] | None = None) -> Task:
        """Create a task with a fresh id and matching created/updated timestamps."""
        now = utc_isoformat()
        task = Task(id=generate_id(), created_at=now, updated_at=now)
        _apply_values(task, field_values or {})
        self._tasks.append(task)
        logger.debug("task.added", extra={"task_id": task.id})
        return task

    def update_task(self, task_id: str, field_id: str, value: Any) -> Task | None:
        """Set one field value and bump `updated_at`."""
        return self.update_task_fields(task_id, {field_id: value})

    def update_task_fields(self, task_id: str, values: Mapping[str, Any]) -> Task | None:
        """Merge several field values with a single `updated_at` bump."""
        task = self.get(task_id)
        if task is None:
            return None
        _apply_values(task, values)
        task.updated_at = utc_isoformat()
        logger.debug("task.updated", extra={"task_id": task_id, "keys": sorted(values)})
        return task

    def delete_task(self, task_id: str) -> bool:
        """Remove one task; absent ids are ignored."""
        return self.delete_tasks([task_id]) > 0

    def delete_tasks(self, task_ids: Iterable[str]) -> int:
        """Remove every task whose id is listed; returns how many were removed."""
        doomed = set(task_ids)
        before = len(self._tasks)
        self._tasks = [task for task in self._tasks if task.id not in doomed]
        removed = before - len(self._tasks)
        if removed:
            logger.debug("task.deleted", extra={"count": removed})
        return removed

    def remove_field_values(self, field_id: str) -> int:
        """Drop `field_id` from every task; returns how many tasks held a value."""
        touched = 0
        for task in self._tasks:
            if field_id in task.field_values:
                del task.field_values[field_id]
                touched += 1
        return touched

    def import_tasks(self, tasks: Iterable[Task], mode: ImportMode) -> list[Task]:
        """Add copies of `tasks` under fresh ids and timestamps.

        `replace` discards the current tasks; `append` keeps them.
        """
        now = utc_isoformat()
        remapped = [
            Task(
                id=generate_id(),
                field_values=dict(task.field_values),
                created_at=now,
                updated_at=now,
            )
            for task in tasks
        ]
        if mode == "replace":
            self._tasks = remapped
        else:
            self._tasks.extend(remapped)
        return remapped
