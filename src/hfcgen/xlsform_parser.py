"""
XLSForm Parser (Layer 1: Workbook → Instrument Model).

Reads the "survey" and "choices" sheets of a SurveyCTO XLSForm and runs the
form-schema analysis pass over them.

Survey sheet columns:
    type, name, label (or label:<language>), labelStata, calculation

Choices sheet columns:
    list_name (or legacy listname), name, label

Syntax Notes:
    - Only digit-coded choices are kept; alternate labeling schemes are
      excluded from value lists
    - Labels are sanitized so they can be interpolated into generated
      scripts: $ becomes #, double quotes and line breaks are removed
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from openpyxl import load_workbook

from hfcgen.catalog import build_catalog
from hfcgen.classifier import classify_questions
from hfcgen.errors import EmptyInstrumentWarning, SchemaError
from hfcgen.model import ChoiceEntry, Instrument, Question
from hfcgen.repeats import (
    assign_datasets,
    assign_repeat_groups,
    build_datasets,
    resolve_repeat_groups,
)


LOGGER = logging.getLogger(__name__)

SURVEY_SHEET = "survey"
CHOICES_SHEET = "choices"

_DIGITS_RE = re.compile(r"^[0-9]+$")
_LINE_BREAK_RE = re.compile(r"[\r\n]+")
_LANGUAGE_LABEL_RE = re.compile(r"^label:", re.IGNORECASE)
_SPACED_STRUCTURE_RE = re.compile(r"^(begin|end)\s+(repeat|group)\b")


@dataclass
class Sheet:
    """One worksheet: header columns plus rows as column -> cell value."""
    name: str
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


def cell_text(value: Any) -> str:
    """Coerce a raw cell value to text. Integral floats lose their ".0"."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def strip_line_breaks(text: str) -> str:
    return _LINE_BREAK_RE.sub("", text)


def sanitize_label(text: str, line_breaks: bool = True) -> str:
    """Make label text safe for script interpolation ($ -> #, no quotes)."""
    text = text.replace("$", "#").replace('"', "")
    if line_breaks:
        text = strip_line_breaks(text)
    return text


def _row_has_content(row: Dict[str, Any]) -> bool:
    return any(cell_text(value).strip() for value in row.values())


def _rows_to_sheet(name: str, rows: List[tuple]) -> Sheet:
    if not rows:
        return Sheet(name=name)

    header = [cell_text(cell).strip() for cell in rows[0]]
    positions = [(i, col) for i, col in enumerate(header) if col]

    parsed: List[Dict[str, Any]] = []
    for raw in rows[1:]:
        row = {col: (raw[i] if i < len(raw) else None) for i, col in positions}
        if _row_has_content(row):
            parsed.append(row)

    return Sheet(name=name, columns=[col for _, col in positions], rows=parsed)


def read_workbook(filepath: str, sheet_names: List[str]) -> Dict[str, Sheet]:
    """
    Read named sheets from an Excel workbook.

    The workbook is opened once and always closed, including on errors.

    Args:
        filepath: Path to the .xlsx workbook
        sheet_names: Sheets to read

    Returns:
        Mapping of sheet name to Sheet

    Raises:
        FileNotFoundError: If the workbook doesn't exist
        SchemaError: If a requested sheet is missing
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"XLSForm not found: {filepath}")

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        missing = [name for name in sheet_names if name not in workbook.sheetnames]
        if missing:
            raise SchemaError(f"Missing required sheet(s) in {path.name}: {missing}")

        sheets = {}
        for name in sheet_names:
            rows = list(workbook[name].iter_rows(values_only=True))
            sheets[name] = _rows_to_sheet(name, rows)
            LOGGER.debug("Read sheet %r: %d rows", name, len(sheets[name].rows))
        return sheets
    finally:
        workbook.close()


def read_sheet(filepath: str, sheet_name: str) -> Sheet:
    """Read a single sheet. See read_workbook."""
    return read_workbook(filepath, [sheet_name])[sheet_name]


def _require_columns(sheet: Sheet, required: List[str]) -> None:
    missing = [col for col in required if col not in sheet.columns]
    if missing:
        raise SchemaError(f"Sheet '{sheet.name}' is missing required columns: {missing}")


def load_choices(sheet: Sheet) -> List[ChoiceEntry]:
    """
    Load the digit-coded entries of the choices sheet.

    Args:
        sheet: The "choices" sheet

    Returns:
        ChoiceEntry objects in sheet order

    Raises:
        SchemaError: If list_name/listname, name or label is missing
    """
    list_col = "list_name" if "list_name" in sheet.columns else "listname"
    _require_columns(sheet, [list_col, "name", "label"])

    entries: List[ChoiceEntry] = []
    row_num = 0
    for row in sheet.rows:
        if not _row_has_content(row):
            continue
        row_num += 1

        name = strip_line_breaks(cell_text(row.get("name"))).strip()
        name = name.replace("-", "_", 1)
        if not _DIGITS_RE.match(name):
            LOGGER.debug("Skipping choice row %d: name %r is not a value code", row_num, name)
            continue

        entries.append(ChoiceEntry(
            list_name=cell_text(row.get(list_col)).replace(" ", ""),
            code=int(name),
            label=sanitize_label(cell_text(row.get("label")), line_breaks=False),
            order=row_num,
        ))

    return entries


def group_choice_lists(entries: List[ChoiceEntry]) -> Dict[str, List[ChoiceEntry]]:
    """Group entries by list name, keeping the first entry seen for each code."""
    lists: Dict[str, List[ChoiceEntry]] = {}
    seen = set()
    for entry in sorted(entries, key=lambda e: e.order):
        key = (entry.list_name, entry.code)
        if key in seen:
            continue
        seen.add(key)
        lists.setdefault(entry.list_name, []).append(entry)
    return lists


def _default_label_column(columns: List[str]) -> Optional[str]:
    if "label" in columns:
        return "label"
    for col in columns:
        if _LANGUAGE_LABEL_RE.match(col):
            return col
    return None


def load_questions(sheet: Sheet) -> List[Question]:
    """
    Load the survey sheet into ordered Question records.

    Rows without a name are dropped, except end_repeat rows, whose position
    is needed to close repeat groups. The spaced spellings "begin repeat",
    "end group" etc. are read as their underscore forms.

    Args:
        sheet: The "survey" sheet

    Returns:
        Questions with order = 1-based position after filtering

    Raises:
        SchemaError: If the type or name column is missing
    """
    _require_columns(sheet, ["type", "name"])
    label_col = _default_label_column(sheet.columns)
    has_working_label = "labelStata" in sheet.columns

    questions: List[Question] = []
    for row in sheet.rows:
        raw_type = _SPACED_STRUCTURE_RE.sub(r"\1_\2", cell_text(row.get("type")).strip())
        type_tokens = raw_type.split()
        name = cell_text(row.get("name")).strip().replace(".", "").lower()

        if not name and type_tokens[:1] != ["end_repeat"]:
            continue

        primary = sanitize_label(cell_text(row.get(label_col))) if label_col else ""
        secondary = sanitize_label(cell_text(row.get("labelStata"))) if has_working_label else ""
        if not secondary:
            secondary = primary

        questions.append(Question(
            name=name,
            raw_type=raw_type,
            type_tokens=type_tokens,
            label_primary=primary,
            label_secondary=secondary,
            calculation=cell_text(row.get("calculation")).strip(),
            order=len(questions) + 1,
        ))

    if not questions:
        warnings.warn(f"No usable question rows in sheet '{sheet.name}'", EmptyInstrumentWarning)

    return questions


def parse_xlsform_sheets(survey_sheet: Sheet, choices_sheet: Sheet,
                         name: str = "XLSForm") -> Instrument:
    """
    Run the full analysis pass over already-read sheets.

    Args:
        survey_sheet: The "survey" sheet
        choices_sheet: The "choices" sheet
        name: Name for the instrument

    Returns:
        Instrument with questions classified, repeat groups resolved,
        datasets assigned and the catalog built

    Raises:
        SchemaError: If required columns are missing
        MalformedRepeatStructureError: If repeat markers cannot be paired
    """
    choices = load_choices(choices_sheet)
    questions = load_questions(survey_sheet)

    classify_questions(questions)
    groups = resolve_repeat_groups(questions)
    assign_repeat_groups(questions, groups)
    assign_datasets(questions, groups)
    datasets = build_datasets(groups)

    LOGGER.info("Parsed %s: %d questions, %d choices, %d repeat groups",
                name, len(questions), len(choices), len(groups))

    return Instrument(
        name=name,
        questions=questions,
        choices=choices,
        choice_lists=group_choice_lists(choices),
        repeat_groups=groups,
        datasets=datasets,
        catalog=build_catalog(questions, datasets),
    )


def parse_xlsform_file(filepath: str, name: Optional[str] = None) -> Instrument:
    """
    Parse an XLSForm workbook into an Instrument.

    Args:
        filepath: Path to the .xlsx workbook
        name: Optional instrument name (defaults to the file stem)

    Returns:
        Instrument

    Raises:
        FileNotFoundError: If the workbook doesn't exist
        SchemaError: If a required sheet or column is missing
        MalformedRepeatStructureError: If repeat markers cannot be paired
    """
    sheets = read_workbook(filepath, [SURVEY_SHEET, CHOICES_SHEET])

    if name is None:
        name = Path(filepath).stem

    instrument = parse_xlsform_sheets(sheets[SURVEY_SHEET], sheets[CHOICES_SHEET], name=name)
    instrument.metadata["source"] = str(filepath)
    return instrument


__all__ = [
    "Sheet",
    "cell_text",
    "sanitize_label",
    "read_workbook",
    "read_sheet",
    "load_choices",
    "group_choice_lists",
    "load_questions",
    "parse_xlsform_sheets",
    "parse_xlsform_file",
]
