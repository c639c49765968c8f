"""Workbook layout codec.

A workbook is laid out as a mapping of sheet name to rows of cells and
stored as an `.xlsx` file through openpyxl:

- ``Tasks``: a header row of field names, then one row per task with
  display-formatted values.
- ``_FieldDefs``: cell A1 holds the field list as JSON.
- ``_ViewConfigs``: cell A1 holds the view configs as JSON.

Sheets whose name starts with ``_`` are metadata sheets, hidden in the
spreadsheet. A workbook without ``_FieldDefs`` (for example one authored by
hand) has its fields inferred from the header row and sample cells.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from io import BytesIO
from typing import Any, Final
from zipfile import BadZipFile

import openpyxl
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException

from taskboard.core.errors import DataSetValidationError
from taskboard.core.ids import generate_id
from taskboard.core.logging import get_logger
from taskboard.core.time import parse_iso_datetime, utc_isoformat
from taskboard.schemas.dataset import DATASET_VERSION, DataSetMetadata, TaskDataSet
from taskboard.schemas.fields import FieldDefinition, FieldType
from taskboard.schemas.tasks import Task
from taskboard.schemas.views import ViewConfig
from taskboard.services.defaults import SystemFieldIds, create_default_fields
from taskboard.services.validation import (
    check_payload_size,
    validate_field_definition,
    validate_view_configs,
)
from taskboard.services.values import split_tokens

logger = get_logger(__name__)

Workbook = dict[str, list[list[Any]]]

TASKS_SHEET: Final[str] = "Tasks"
FIELD_DEFS_SHEET: Final[str] = "_FieldDefs"
VIEW_CONFIGS_SHEET: Final[str] = "_ViewConfigs"
INFERENCE_SAMPLE_SIZE: Final[int] = 20
INFERRED_FIELD_WIDTH: Final[int] = 150

# Header names recognized as system fields (English and Japanese exports).
KNOWN_HEADERS: Final[dict[str, tuple[str, FieldType]]] = {
    "Title": (SystemFieldIds.TITLE, "text"),
    "タイトル": (SystemFieldIds.TITLE, "text"),
    "Status": (SystemFieldIds.STATUS, "select"),
    "ステータス": (SystemFieldIds.STATUS, "select"),
    "Assignee": (SystemFieldIds.ASSIGNEE, "person"),
    "担当者": (SystemFieldIds.ASSIGNEE, "person"),
    "Due Date": (SystemFieldIds.DUE_DATE, "date"),
    "期限": (SystemFieldIds.DUE_DATE, "date"),
    "Priority": (SystemFieldIds.PRIORITY, "select"),
    "優先度": (SystemFieldIds.PRIORITY, "select"),
    "Description": (SystemFieldIds.DESCRIPTION, "text"),
    "説明": (SystemFieldIds.DESCRIPTION, "text"),
    "Tags": (SystemFieldIds.TAGS, "multi_select"),
    "タグ": (SystemFieldIds.TAGS, "multi_select"),
    "Progress": (SystemFieldIds.PROGRESS, "progress"),
    "進捗": (SystemFieldIds.PROGRESS, "progress"),
    "Start Date": (SystemFieldIds.START_DATE, "date"),
    "開始日": (SystemFieldIds.START_DATE, "date"),
    "Category": (SystemFieldIds.CATEGORY, "select"),
    "業務": (SystemFieldIds.CATEGORY, "select"),
}
BOOLEAN_CELL_TOKENS: Final[frozenset[str]] = frozenset(
    {"true", "false", "yes", "no", "はい", "いいえ", "done", "not done"},
)
TRUE_CELL_TOKENS: Final[frozenset[str]] = frozenset({"true", "yes", "はい", "done", "1"})
DATE_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r"^\d{4}-\d{2}-\d{2}")
SLASH_DATE_RE: Final[re.Pattern[str]] = re.compile(r"\d{4}/\d{1,2}/\d{1,2}")
HTTP_URL_RE: Final[re.Pattern[str]] = re.compile(r"^https?://")


def _is_blank(cell: object) -> bool:
    return cell is None or cell == ""


def _as_number(cell: object) -> float | None:
    if isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        number = float(cell)
    elif isinstance(cell, str):
        try:
            number = float(cell.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _looks_like_date(cell: object) -> bool:
    if isinstance(cell, (date, datetime)):
        return True
    text = str(cell).strip()
    return bool(
        DATE_PREFIX_RE.match(text)
        or SLASH_DATE_RE.fullmatch(text)
        or parse_iso_datetime(text) is not None,
    )


def infer_type(samples: Sequence[object]) -> FieldType:
    """Guess a field type from non-empty sample cells.

    Numbers become `progress` when there are at least three samples and all
    lie in 0..100; otherwise the first matching rule of date, checkbox,
    comma-separated list and URL wins, falling back to text.
    """
    if not samples:
        return "text"
    numbers = [_as_number(sample) for sample in samples]
    if all(number is not None for number in numbers):
        bounded = all(0 <= number <= 100 for number in numbers if number is not None)
        if len(samples) >= 3 and bounded:
            return "progress"
        return "number"
    if all(_looks_like_date(sample) for sample in samples):
        return "date"
    if all(str(sample).lower() in BOOLEAN_CELL_TOKENS for sample in samples):
        return "checkbox"
    if any("," in str(sample) for sample in samples):
        return "multi_select"
    if all(HTTP_URL_RE.match(str(sample)) for sample in samples):
        return "url"
    return "text"


def infer_fields(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> list[FieldDefinition]:
    """Build field definitions for a workbook exported without `_FieldDefs`."""
    defaults = {field_def.id: field_def for field_def in create_default_fields()}
    fields: list[FieldDefinition] = []
    for index, header in enumerate(headers):
        known = KNOWN_HEADERS.get(header)
        if known is not None:
            field_id, field_type = known
            default = defaults.get(field_id)
            if default is not None:
                updates = {"name": header, "order": index, "visible": True}
                fields.append(default.model_copy(update=updates))
            else:
                fields.append(
                    FieldDefinition(
                        id=field_id,
                        name=header,
                        type=field_type,
                        required=field_id == SystemFieldIds.TITLE,
                        order=index,
                        width=INFERRED_FIELD_WIDTH,
                    ),
                )
            continue
        samples = [
            row[index]
            for row in rows[:INFERENCE_SAMPLE_SIZE]
            if index < len(row) and not _is_blank(row[index])
        ]
        fields.append(
            FieldDefinition(
                id=f"field_{generate_id()}",
                name=header,
                type=infer_type(samples),
                order=index,
                width=INFERRED_FIELD_WIDTH,
            ),
        )
    return fields


def format_cell(value: object, field_def: FieldDefinition) -> Any:
    """Display form of a stored value: option labels, joined lists, Yes/No."""
    if value is None:
        return ""
    field_type = field_def.type
    if field_type == "select":
        option = next((opt for opt in field_def.options or [] if opt.id == value), None)
        return option.label if option is not None else str(value)
    if field_type in {"multi_select", "person"}:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return str(value)
    if field_type == "checkbox":
        return "Yes" if value else "No"
    if field_type in {"number", "progress"}:
        number = _as_number(value)
        if number is None:
            return 0
        return int(number) if number.is_integer() else number
    return str(value)


def parse_cell(cell: object, field_def: FieldDefinition) -> Any:
    """Stored form of a cell for `field_def`; None means the cell is empty."""
    if _is_blank(cell):
        return None
    field_type = field_def.type
    if field_type in {"number", "progress"}:
        number = _as_number(cell) or 0.0
        if field_type == "progress":
            number = min(100.0, max(0.0, number))
        return int(number) if number.is_integer() else number
    if field_type == "checkbox":
        if isinstance(cell, bool):
            return cell
        return str(cell).strip().lower() in TRUE_CELL_TOKENS
    if field_type in {"multi_select", "person"}:
        return split_tokens(cell if isinstance(cell, list) else str(cell)) or None
    if field_type == "date":
        if isinstance(cell, datetime):
            return cell.date().isoformat()
        if isinstance(cell, date):
            return cell.isoformat()
        return str(cell).strip()
    if field_type == "select":
        text = str(cell).strip()
        option = field_def.find_option(text)
        return option.id if option is not None else text
    return str(cell)


def write_sheets(dataset: TaskDataSet) -> Workbook:
    """Lay `dataset` out as the Tasks sheet plus the hidden metadata sheets."""
    ordered = sorted(dataset.fields, key=lambda field_def: field_def.order)
    rows: list[list[Any]] = [[field_def.name for field_def in ordered]]
    for task in dataset.tasks:
        rows.append([format_cell(task.value(field_def.id), field_def) for field_def in ordered])
    field_defs = [field_def.to_wire() for field_def in dataset.fields]
    view_configs = [view.to_wire() for view in dataset.view_configs]
    return {
        TASKS_SHEET: rows,
        FIELD_DEFS_SHEET: [[json.dumps(field_defs, ensure_ascii=False)]],
        VIEW_CONFIGS_SHEET: [[json.dumps(view_configs, ensure_ascii=False)]],
    }


def _first_cell(rows: Sequence[Sequence[Any]] | None) -> object:
    if not rows or not rows[0]:
        return None
    return rows[0][0]


def _read_field_defs(
    workbook: Mapping[str, Sequence[Sequence[Any]]],
) -> list[FieldDefinition] | None:
    blob = _first_cell(workbook.get(FIELD_DEFS_SHEET))
    if not isinstance(blob, str):
        return None
    try:
        parsed = json.loads(blob)
    except json.JSONDecodeError:
        logger.warning("sheets.field_defs.unreadable", extra={"reason": "json"})
        return None
    if not isinstance(parsed, list):
        logger.warning("sheets.field_defs.unreadable", extra={"reason": "shape"})
        return None
    try:
        return [validate_field_definition(entry) for entry in parsed]
    except DataSetValidationError as exc:
        logger.warning("sheets.field_defs.unreadable", extra={"reason": str(exc)})
        return None


def _read_view_configs(workbook: Mapping[str, Sequence[Sequence[Any]]]) -> list[ViewConfig]:
    blob = _first_cell(workbook.get(VIEW_CONFIGS_SHEET))
    if not isinstance(blob, str):
        return []
    try:
        return validate_view_configs(json.loads(blob))
    except json.JSONDecodeError:
        logger.warning("sheets.view_configs.unreadable")
        return []


def _main_sheet_name(workbook: Mapping[str, Any]) -> str | None:
    if TASKS_SHEET in workbook:
        return TASKS_SHEET
    names = list(workbook)
    visible = [name for name in names if not name.startswith("_")]
    if visible:
        return visible[0]
    return names[0] if names else None


def _check_workbook(workbook: object) -> Mapping[str, Sequence[Sequence[Any]]]:
    if not isinstance(workbook, Mapping):
        raise DataSetValidationError("Invalid data: workbook is not an object")
    for name, rows in workbook.items():
        if not isinstance(name, str) or not isinstance(rows, list):
            raise DataSetValidationError("Invalid data: sheet is not an array of rows")
        if not all(isinstance(row, list) for row in rows):
            raise DataSetValidationError(f"Invalid data: sheet {name!r} has a non-array row")
    return workbook


def read_sheets(workbook: object) -> TaskDataSet:
    """Rebuild a dataset from a workbook; every task gets a fresh id."""
    sheets = _check_workbook(workbook)
    fields = _read_field_defs(sheets)
    view_configs = _read_view_configs(sheets)
    main_name = _main_sheet_name(sheets)
    rows = list(sheets.get(main_name, [])) if main_name is not None else []
    metadata = DataSetMetadata(source="local")

    if not rows:
        return TaskDataSet(
            version=DATASET_VERSION,
            fields=fields if fields is not None else create_default_fields(),
            view_configs=view_configs,
            metadata=metadata,
        )

    headers = [str(header if header is not None else "").strip() for header in rows[0]]
    data_rows = rows[1:]
    if fields is None:
        fields = infer_fields(headers, data_rows)

    columns: dict[int, FieldDefinition] = {}
    for index, header in enumerate(headers):
        match = next((field_def for field_def in fields if field_def.name == header), None)
        if match is not None:
            columns[index] = match

    tasks: list[Task] = []
    for row in data_rows:
        if all(_is_blank(cell) for cell in row):
            continue
        values: dict[str, Any] = {}
        for index, cell in enumerate(row):
            field_def = columns.get(index)
            if field_def is None:
                continue
            value = parse_cell(cell, field_def)
            if value is not None:
                values[field_def.id] = value
        now = utc_isoformat()
        tasks.append(Task(id=generate_id(), field_values=values, created_at=now, updated_at=now))

    logger.debug(
        "sheets.read",
        extra={"sheet": main_name, "tasks": len(tasks), "fields": len(fields)},
    )
    return TaskDataSet(
        version=DATASET_VERSION,
        fields=fields,
        tasks=tasks,
        view_configs=view_configs,
        metadata=metadata,
    )


def _xlsx_cell(cell: Any) -> Any:
    if isinstance(cell, str):
        return ILLEGAL_CHARACTERS_RE.sub("", cell)
    return cell


def dumps_workbook(workbook: Workbook) -> bytes:
    """Encode a workbook layout as an `.xlsx` file; `_` sheets are hidden."""
    book = openpyxl.Workbook()
    book.remove(book.active)
    for name, rows in workbook.items():
        sheet = book.create_sheet(title=name)
        if name.startswith("_"):
            sheet.sheet_state = "hidden"
        for row_index, row in enumerate(rows, start=1):
            for column_index, value in enumerate(row, start=1):
                cell = sheet.cell(row=row_index, column=column_index, value=_xlsx_cell(value))
                # Text such as "=total" is data, not a formula.
                if cell.data_type == "f":
                    cell.data_type = "s"
    buffer = BytesIO()
    book.save(buffer)
    return buffer.getvalue()


def _sheet_rows(sheet: Any) -> list[list[Any]]:
    rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    while rows and all(_is_blank(cell) for cell in rows[-1]):
        rows.pop()
    return rows


def loads_workbook(payload: bytes) -> TaskDataSet:
    """Read an `.xlsx` file and rebuild its dataset."""
    check_payload_size(len(payload))
    try:
        book = openpyxl.load_workbook(BytesIO(payload), data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise DataSetValidationError("Invalid data: not a readable .xlsx workbook") from exc
    workbook = {sheet.title: _sheet_rows(sheet) for sheet in book.worksheets}
    book.close()
    return read_sheets(workbook)
