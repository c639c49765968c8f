"""View configurations and the active-view pointer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from taskboard.core.ids import generate_id
from taskboard.core.logging import get_logger
from taskboard.schemas.views import (
    FilterRule,
    GroupConfig,
    SortConfig,
    ViewConfig,
    ViewType,
)
from taskboard.services.defaults import DEFAULT_ACTIVE_VIEW_ID, create_default_views

logger = get_logger(__name__)


class ViewRegistry:
    """Ordered view configs; at least one view always exists.

    The active pointer is not validated when set. Reads resolve a stale
    pointer to the first view.
    """

    def __init__(
        self,
        views: Iterable[ViewConfig] | None = None,
        active_view_id: str = DEFAULT_ACTIVE_VIEW_ID,
    ) -> None:
        self._views: list[ViewConfig] = []
        self.active_view_id = active_view_id
        self.replace_all(views if views is not None else create_default_views())

    def __len__(self) -> int:
        return len(self._views)

    def replace_all(self, views: Iterable[ViewConfig]) -> None:
        """Install `views`, falling back to the defaults when empty."""
        installed = list(views)
        self._views = installed or create_default_views()

    def all(self) -> list[ViewConfig]:
        return list(self._views)

    def get(self, view_id: str) -> ViewConfig | None:
        """Return the view with `view_id`, if any."""
        for view in self._views:
            if view.id == view_id:
                return view
        return None

    def set_active_view(self, view_id: str) -> None:
        """Point at `view_id` (existence is resolved on read)."""
        self.active_view_id = view_id

    def get_active_view(self) -> ViewConfig:
        """The active view, or the first view when the pointer is stale."""
        return self.get(self.active_view_id) or self._views[0]

    def add_view(self, draft: Mapping[str, Any] | ViewConfig) -> ViewConfig:
        """Append a view built from `draft` under a generated id."""
        if isinstance(draft, ViewConfig):
            attributes = draft.model_dump(exclude={"id"})
        else:
            attributes = {key: value for key, value in draft.items() if key != "id"}
        view = ViewConfig.model_validate({**attributes, "id": generate_id()})
        self._views.append(view)
        logger.debug("view.added", extra={"view_id": view.id, "view_type": view.type})
        return view

    def update_view(self, view_id: str, patch: Mapping[str, Any]) -> ViewConfig | None:
        """Shallow-merge `patch` into the view; the id cannot change."""
        for index, view in enumerate(self._views):
            if view.id == view_id:
                changes = {key: value for key, value in patch.items() if key != "id"}
                updated = ViewConfig.model_validate({**view.model_dump(), **changes})
                self._views[index] = updated
                logger.debug("view.updated", extra={"view_id": view_id, "keys": sorted(changes)})
                return updated
        return None

    def delete_view(self, view_id: str) -> bool:
        """Remove a view unless it is the last one; the active pointer moves to the first view."""
        if len(self._views) <= 1:
            logger.warning("view.delete.refused", extra={"view_id": view_id})
            return False
        remaining = [view for view in self._views if view.id != view_id]
        if len(remaining) == len(self._views):
            return False
        self._views = remaining
        if self.active_view_id == view_id:
            self.active_view_id = self._views[0].id
        logger.debug("view.deleted", extra={"view_id": view_id})
        return True

    def set_active_view_type(self, view_type: ViewType) -> ViewConfig | None:
        """Activate the first view of `view_type`; no-op when there is none."""
        for view in self._views:
            if view.type == view_type:
                self.active_view_id = view.id
                return view
        return None

    def set_sorts(self, sorts: Sequence[SortConfig]) -> ViewConfig:
        view = self.get_active_view()
        view.sorts = list(sorts)
        return view

    def set_filters(self, filters: Sequence[FilterRule]) -> ViewConfig:
        view = self.get_active_view()
        view.filters = list(filters)
        return view

    def set_group(self, group: GroupConfig | None) -> ViewConfig:
        view = self.get_active_view()
        view.group = group
        return view

    def toggle_sort(self, field_id: str) -> ViewConfig:
        """Cycle the active view's single sort on `field_id`: asc, desc, none."""
        view = self.get_active_view()
        current = next((sort for sort in view.sorts if sort.field_id == field_id), None)
        if current is None:
            view.sorts = [SortConfig(field_id=field_id, direction="asc")]
        elif current.direction == "asc":
            view.sorts = [SortConfig(field_id=field_id, direction="desc")]
        else:
            view.sorts = []
        return view

    def forget_field(self, field_id: str) -> int:
        """Strip `field_id` from every view's columns, sorts, filters and group."""
        touched = 0
        for view in self._views:
            before = (len(view.visible_field_ids), len(view.sorts), len(view.filters))
            view.visible_field_ids = [fid for fid in view.visible_field_ids if fid != field_id]
            view.sorts = [sort for sort in view.sorts if sort.field_id != field_id]
            view.filters = [rule for rule in view.filters if rule.field_id != field_id]
            changed = before != (len(view.visible_field_ids), len(view.sorts), len(view.filters))
            if view.group is not None and view.group.field_id == field_id:
                view.group = None
                changed = True
            if changed:
                touched += 1
        return touched

    def set_field_visibility(self, field_id: str, *, visible: bool) -> None:
        """Add `field_id` to (or remove it from) every view's visible columns."""
        for view in self._views:
            if visible and field_id not in view.visible_field_ids:
                view.visible_field_ids.append(field_id)
            elif not visible and field_id in view.visible_field_ids:
                view.visible_field_ids.remove(field_id)
