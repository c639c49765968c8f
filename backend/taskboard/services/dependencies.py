"""Task dependency graph helpers for the gantt timeline."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from taskboard.schemas.tasks import Task
from taskboard.services.defaults import SystemFieldIds

# task id -> ids of the tasks it depends on
DependencyGraph = dict[str, list[str]]


@dataclass(frozen=True, slots=True)
class DependencyEdge:
    """`predecessor` must finish before `successor`."""

    predecessor: str
    successor: str


def get_dependencies(task: Task) -> list[str]:
    """Non-empty string ids stored in the task's dependencies field."""
    value = task.value(SystemFieldIds.DEPENDENCIES)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


def build_dependency_graph(tasks: Sequence[Task]) -> DependencyGraph:
    return {task.id: get_dependencies(task) for task in tasks}


def would_create_cycle(graph: Mapping[str, Sequence[str]], source: str, target: str) -> bool:
    """Whether making `target` depend on `source` closes a cycle.

    True when `target` is reachable from `source` by following dependencies,
    including the self-dependency case.
    """
    if source == target:
        return True
    visited: set[str] = set()
    stack = [source]
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(dep for dep in graph.get(current, ()) if dep not in visited)
    return False


def dependency_edges(tasks: Sequence[Task]) -> list[DependencyEdge]:
    """Edges whose predecessor is one of `tasks`; dangling references are skipped."""
    known = {task.id for task in tasks}
    return [
        DependencyEdge(predecessor=dep, successor=task.id)
        for task in tasks
        for dep in get_dependencies(task)
        if dep in known
    ]
