from __future__ import annotations

import pytest

from taskboard.core.errors import FieldValueError
from taskboard.schemas.fields import FieldDefinition, SelectOption
from taskboard.services.values import (
    dedupe,
    is_empty_value,
    migrate_person_value,
    normalize_value,
    split_tokens,
)


def _field(field_type: str, **kwargs: object) -> FieldDefinition:
    return FieldDefinition(id=f"f_{field_type}", name=field_type, type=field_type, **kwargs)


def _status() -> FieldDefinition:
    return _field(
        "select",
        options=[
            SelectOption(id="a", label="Open"),
            SelectOption(id="b", label="Done"),
        ],
    )


@pytest.mark.parametrize("value", [None, "", []])
def test_is_empty_value_for_empty_shapes(value: object) -> None:
    assert is_empty_value(value) is True


@pytest.mark.parametrize("value", ["x", 0, False, ["a"], "  "])
def test_is_empty_value_for_present_shapes(value: object) -> None:
    assert is_empty_value(value) is False


def test_split_tokens_accepts_half_and_full_width_commas() -> None:
    assert split_tokens("a, b，c ,, ") == ["a", "b", "c"]
    assert split_tokens([" x ", None, "", 3]) == ["x", "3"]
    assert split_tokens(None) == []


def test_dedupe_keeps_first_occurrence_order() -> None:
    assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


@pytest.mark.parametrize("raw", [None, "", "   ", []])
def test_empty_input_normalizes_to_none(raw: object) -> None:
    assert normalize_value(_field("text"), raw) is None
    assert normalize_value(_field("number"), raw) is None


def test_text_value_is_stringified() -> None:
    assert normalize_value(_field("text"), 42) == "42"


def test_text_rejects_structured_values() -> None:
    with pytest.raises(FieldValueError, match="must be a string"):
        normalize_value(_field("text"), {"a": 1})


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(3, 3), (2.5, 2.5), ("7", 7), (" 1.25 ", 1.25)],
)
def test_number_accepts_numbers_and_numeric_strings(raw: object, expected: float) -> None:
    assert normalize_value(_field("number"), raw) == expected


@pytest.mark.parametrize("raw", ["abc", True, float("inf"), {"n": 1}])
def test_number_rejects_non_numeric_values(raw: object) -> None:
    with pytest.raises(FieldValueError):
        normalize_value(_field("number"), raw)


@pytest.mark.parametrize(("raw", "expected"), [(-5, 0), (50, 50), (150, 100), ("101", 100)])
def test_progress_is_clamped(raw: object, expected: int) -> None:
    assert normalize_value(_field("progress"), raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(True, True), ("yes", True), ("Done", True), ("0", False), ("no", False), (0, False)],
)
def test_checkbox_tokens(raw: object, expected: bool) -> None:
    assert normalize_value(_field("checkbox"), raw) is expected


def test_checkbox_rejects_unknown_tokens() -> None:
    with pytest.raises(FieldValueError, match="true or false"):
        normalize_value(_field("checkbox"), "maybe")


def test_date_accepts_iso_strings_only() -> None:
    assert normalize_value(_field("date"), "2024-03-01") == "2024-03-01"
    assert normalize_value(_field("date"), "2024-03-01T10:00:00.000Z") == "2024-03-01T10:00:00.000Z"
    with pytest.raises(FieldValueError, match="ISO date"):
        normalize_value(_field("date"), "03/01/2024")


def test_url_keeps_safe_schemes_and_drops_others() -> None:
    assert normalize_value(_field("url"), "https://example.com/a") == "https://example.com/a"
    assert normalize_value(_field("url"), "javascript:alert(1)") is None


def test_select_maps_label_to_option_id() -> None:
    status = _status()
    assert normalize_value(status, "Done") == "b"
    assert normalize_value(status, "a") == "a"
    assert normalize_value(status, "unknown") == "unknown"


def test_select_rejects_lists() -> None:
    with pytest.raises(FieldValueError, match="option id"):
        normalize_value(_status(), ["a"])


def test_multi_select_stores_deduplicated_labels() -> None:
    tags = _field("multi_select", options=[SelectOption(id="t1", label="Bug")])
    assert normalize_value(tags, "t1, Docs, Bug，Docs") == ["Bug", "Docs"]


def test_person_string_becomes_single_element_list() -> None:
    assert normalize_value(_field("person"), "Taro") == ["Taro"]


def test_migrate_person_value_wraps_bare_strings_only() -> None:
    assert migrate_person_value("Hanako") == ["Hanako"]
    assert migrate_person_value(["Hanako"]) == ["Hanako"]
    assert migrate_person_value(None) is None
