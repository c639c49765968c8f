"""Field definition and select-option schemas."""

from __future__ import annotations

from typing import Final, Literal, Self

from pydantic import Field, field_validator, model_validator
from sqlmodel import SQLModel

from taskboard.schemas.common import CamelModel, NonEmptyStr
from taskboard.services.sanitize import DEFAULT_OPTION_COLOR, sanitize_color

FieldType = Literal[
    "text",
    "number",
    "select",
    "multi_select",
    "date",
    "person",
    "checkbox",
    "url",
    "progress",
]
FIELD_TYPES: Final[tuple[FieldType, ...]] = (
    "text",
    "number",
    "select",
    "multi_select",
    "date",
    "person",
    "checkbox",
    "url",
    "progress",
)
OPTION_FIELD_TYPES: Final[frozenset[str]] = frozenset({"select", "multi_select"})
FIELD_TYPE_ALIASES: Final[dict[str, FieldType]] = {
    "text": "text",
    "string": "text",
    "number": "number",
    "select": "select",
    "multi_select": "multi_select",
    "multi-select": "multi_select",
    "multiselect": "multi_select",
    "tags": "multi_select",
    "date": "date",
    "person": "person",
    "checkbox": "checkbox",
    "boolean": "checkbox",
    "url": "url",
    "progress": "progress",
}


def normalize_field_type(value: object) -> FieldType:
    """Resolve a field type name or alias."""
    if not isinstance(value, str):
        raise ValueError("type must be a string")
    resolved = FIELD_TYPE_ALIASES.get(value.strip().lower())
    if resolved is None:
        raise ValueError(f"type must be one of: {', '.join(FIELD_TYPES)}")
    return resolved


class SelectOption(CamelModel):
    """One selectable choice of a select/multi_select field."""

    id: str
    label: str
    color: str = DEFAULT_OPTION_COLOR

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: object) -> str:
        """Replace malformed colors with the fallback instead of rejecting them."""
        return sanitize_color(value)


class FieldDefinition(CamelModel):
    """A named, typed column of task data."""

    id: str
    name: str
    type: FieldType = "text"
    required: bool = False
    order: int = 0
    width: int | None = None
    visible: bool = True
    options: list[SelectOption] | None = None
    default_value: object | None = None
    is_system: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: object) -> object:
        """Normalize field type aliases."""
        return normalize_field_type(value)

    @model_validator(mode="after")
    def options_only_for_select_types(self) -> Self:
        """Keep `options` for select/multi_select fields only."""
        if self.type in OPTION_FIELD_TYPES:
            if self.options is None:
                self.options = []
        else:
            self.options = None
        return self

    @property
    def has_options(self) -> bool:
        """Whether values of this field reference an option list."""
        return self.type in OPTION_FIELD_TYPES

    def find_option(self, token: str) -> SelectOption | None:
        """Return the option whose id or label equals `token`."""
        for option in self.options or []:
            if option.id == token:
                return option
        for option in self.options or []:
            if option.label == token:
                return option
        return None


class FieldCreate(SQLModel):
    """Payload for adding a user field."""

    name: NonEmptyStr
    type: FieldType = "text"
    required: bool = False
    width: int | None = Field(default=None, ge=20)
    options: list[SelectOption] | None = None
    default_value: object | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: object) -> object:
        """Normalize field type aliases."""
        return normalize_field_type(value)


class FieldUpdate(SQLModel):
    """Payload for editing a field; the type is fixed at creation."""

    name: NonEmptyStr | None = None
    required: bool | None = None
    width: int | None = Field(default=None, ge=20)
    visible: bool | None = None
    options: list[SelectOption] | None = None
    default_value: object | None = None

    @model_validator(mode="before")
    @classmethod
    def reject_immutable_keys(cls, value: object) -> object:
        """Disallow type and identity changes after creation."""
        if isinstance(value, dict):
            if "type" in value:
                raise ValueError("type cannot be changed after creation.")
            if "id" in value or "is_system" in value or "isSystem" in value:
                raise ValueError("id and is_system cannot be changed.")
        return value

    @model_validator(mode="after")
    def reject_null_for_non_nullable_fields(self) -> Self:
        """Reject explicit null for fields that must keep a value."""
        invalid = [
            name
            for name in ("name", "required", "visible", "options")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if invalid:
            raise ValueError(
                f"{', '.join(invalid)} cannot be null; omit the field to leave it unchanged",
            )
        return self

    @model_validator(mode="after")
    def require_some_update(self) -> Self:
        """Reject empty updates to avoid no-op requests."""
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        return self


class FieldOptionsUpdate(SQLModel):
    """Payload replacing a select/multi_select option list."""

    options: list[SelectOption]

    @field_validator("options")
    @classmethod
    def reject_duplicate_ids(cls, value: list[SelectOption]) -> list[SelectOption]:
        """Option ids must be unique within a field."""
        ids = [option.id for option in value]
        if len(ids) != len(set(ids)):
            raise ValueError("option ids must be unique")
        return value


class FieldReorder(SQLModel):
    """Field ids in their new display order."""

    field_ids: list[str]


class FieldOperatorsRead(SQLModel):
    """Filter operators offered for a field."""

    field_id: str
    operators: list[str]
