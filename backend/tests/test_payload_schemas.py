from __future__ import annotations

import pytest
from pydantic import ValidationError

from taskboard.schemas.fields import FieldCreate, FieldOptionsUpdate, FieldUpdate, SelectOption
from taskboard.schemas.tasks import TaskBulkDelete, TaskImport, TaskUpdate
from taskboard.schemas.views import ActiveViewUpdate, ViewUpdate
from taskboard.services.sanitize import DEFAULT_OPTION_COLOR


def test_field_create_normalizes_type_aliases() -> None:
    payload = FieldCreate.model_validate({"name": "  Budget ", "type": "multiselect"})
    assert payload.name == "Budget"
    assert payload.type == "multi_select"


def test_field_create_rejects_narrow_columns() -> None:
    with pytest.raises(ValidationError):
        FieldCreate.model_validate({"name": "Budget", "width": 5})


def test_field_update_rejects_type_change() -> None:
    with pytest.raises(ValidationError, match="type cannot be changed after creation"):
        FieldUpdate.model_validate({"type": "number"})


def test_field_update_rejects_identity_change() -> None:
    with pytest.raises(ValidationError, match="id and is_system cannot be changed"):
        FieldUpdate.model_validate({"isSystem": True})


def test_field_update_requires_some_field() -> None:
    with pytest.raises(ValidationError, match="At least one field is required"):
        FieldUpdate.model_validate({})


def test_field_update_rejects_null_name() -> None:
    with pytest.raises(ValidationError, match="name cannot be null"):
        FieldUpdate.model_validate({"name": None})


def test_field_update_allows_clearing_default_value() -> None:
    payload = FieldUpdate.model_validate({"default_value": None})
    assert payload.model_dump(exclude_unset=True) == {"default_value": None}


def test_field_options_reject_duplicate_ids() -> None:
    with pytest.raises(ValidationError, match="option ids must be unique"):
        FieldOptionsUpdate.model_validate(
            {"options": [{"id": "a", "label": "A"}, {"id": "a", "label": "B"}]},
        )


def test_task_update_requires_values() -> None:
    with pytest.raises(ValidationError, match="At least one field value is required"):
        TaskUpdate.model_validate({"field_values": {}})


def test_task_bulk_delete_requires_ids() -> None:
    with pytest.raises(ValidationError):
        TaskBulkDelete.model_validate({"task_ids": []})


def test_task_import_defaults_to_append() -> None:
    payload = TaskImport.model_validate({"tasks": [{"field_values": {"title": "x"}}]})
    assert payload.mode == "append"
    assert payload.fields == []
    assert payload.tasks[0].id is None


@pytest.mark.parametrize("body", [{}, {"view_id": "v", "view_type": "table"}])
def test_active_view_update_requires_exactly_one_target(body: dict[str, str]) -> None:
    with pytest.raises(ValidationError, match="exactly one of view_id or view_type"):
        ActiveViewUpdate.model_validate(body)


def test_view_update_rejects_id_and_empty_patch() -> None:
    with pytest.raises(ValidationError):
        ViewUpdate.model_validate({"id": "other"})
    with pytest.raises(ValidationError):
        ViewUpdate.model_validate({})
    with pytest.raises(ValidationError):
        ViewUpdate.model_validate({"sorts": None})


def test_select_option_rejects_color_with_trailing_newline() -> None:
    option = SelectOption(id="a", label="A", color="#abcdef\n")
    assert option.color == DEFAULT_OPTION_COLOR
