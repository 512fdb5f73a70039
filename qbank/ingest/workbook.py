"""
Workbook-level driver for question bank validation.

A workbook may hold up to four question sheets (qcm, qroc, cas_qcm, cas_qroc),
matched by alias-tolerant names. Each present sheet is read header-first, every
non-blank row is canonicalized and validated, and the outcomes are collected
into two partitions.

The export helpers turn either partition back into a single-sheet workbook.
That file is a report for humans: option lists and explanations are flattened
to display strings, so re-importing an exported workbook is not supported.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, Iterable, List, Union

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from qbank.ingest.errors import NoRecognizedSheetsError, WorkbookFormatError
from qbank.ingest.headers import SHEET_ROLES, canonicalize_header, resolve_sheet_role
from qbank.ingest.options import ParsedOption
from qbank.ingest.validator import (
    Accepted,
    RawRow,
    Rejected,
    RowValidator,
    ValidationOutcome,
    outcome_from_dict,
)

logger = logging.getLogger(__name__)

EXPORT_MODES = ('good', 'bad')

EXPORT_COLUMNS = [
    'subject', 'course', 'question_number', 'question_text', 'answer', 'correct_answers',
    'option_a', 'option_b', 'option_c', 'option_d', 'option_e', 'explanation', 'image',
]

FAILED_ROW_COLUMNS = [
    'sheet', 'row', 'subject', 'course', 'question_number', 'question_text', 'answer', 'reason',
]


@dataclass
class ValidationResult:
    accepted: List[Accepted] = field(default_factory=list)
    rejected: List[Rejected] = field(default_factory=list)
    sheets: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.accepted) + len(self.rejected)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'good_count': len(self.accepted),
            'bad_count': len(self.rejected),
            'sheets': list(self.sheets),
            'good': [outcome.to_dict() for outcome in self.accepted],
            'bad': [outcome.to_dict() for outcome in self.rejected],
        }


def cell_to_text(value) -> str:
    """Render a cell value as trimmed text; whole floats lose their '.0'."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def load_workbook_bytes(file_content: bytes):
    """
    Open an uploaded .xlsx; anything unreadable is a run-level error.

    Loaded fully, not read-only, so a stale stored sheet dimension cannot
    hide rows.
    """
    try:
        return load_workbook(BytesIO(file_content), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise WorkbookFormatError(f"Not a readable .xlsx workbook: {e}") from e


def locate_sheets(workbook) -> Dict[str, str]:
    """Map each present sheet role to the actual sheet title (first match wins)."""
    located = {}
    for title in workbook.sheetnames:
        role = resolve_sheet_role(title)
        if role and role not in located:
            located[role] = title
    return located


def read_sheet_rows(worksheet, sheet_role: str) -> List[RawRow]:
    """Canonicalize the header row and turn each non-blank data row into a RawRow."""
    rows = worksheet.iter_rows(values_only=True)
    try:
        header_cells = next(rows)
    except StopIteration:
        return []

    header = [canonicalize_header(cell_to_text(cell)) for cell in header_cells]

    raw_rows = []
    for offset, cells in enumerate(rows, start=2):
        texts = [cell_to_text(cell) for cell in (cells or ())]
        if not any(texts):
            continue

        values = {}
        for idx, key in enumerate(header):
            if not key:
                continue
            text = texts[idx] if idx < len(texts) else ''
            # Repeated headers: keep the first non-empty value
            if not values.get(key):
                values[key] = text
        raw_rows.append(RawRow(sheet=sheet_role, row_number=offset, values=values))

    return raw_rows


def validate_workbook(source: Union[bytes, Any]) -> ValidationResult:
    """Validate every recognized sheet of a workbook (bytes or an openpyxl workbook)."""
    workbook = load_workbook_bytes(source) if isinstance(source, (bytes, bytearray)) else source

    located = locate_sheets(workbook)
    if not located:
        raise NoRecognizedSheetsError(workbook.sheetnames)

    result = ValidationResult()
    for role in SHEET_ROLES:
        title = located.get(role)
        if not title:
            logger.info(f"Sheet '{role}' not found, skipping")
            continue

        raw_rows = read_sheet_rows(workbook[title], role)
        validator = RowValidator(role)
        good = bad = 0
        for outcome in validator.validate_all(raw_rows):
            if outcome.accepted:
                result.accepted.append(outcome)
                good += 1
            else:
                result.rejected.append(outcome)
                bad += 1

        result.sheets.append(role)
        logger.info(f"Sheet '{title}' ({role}): {good} valid, {bad} rejected")

    return result


def _display(value) -> str:
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return ', '.join(_display(item) for item in value)
    if isinstance(value, ParsedOption):
        return value.text
    return str(value)


def _workbook_bytes(title: str, header: List[str], rows: Iterable[List[Any]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append(header)
    for row in rows:
        sheet.append(row)
        # Cell text starting with "=" is data, not a formula
        for cell in sheet[sheet.max_row]:
            if isinstance(cell.value, str) and cell.value.startswith('='):
                cell.data_type = 's'

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_outcomes(outcomes: Iterable[Union[ValidationOutcome, Dict[str, Any]]], mode: str) -> bytes:
    """
    Write one validation partition to a single-sheet .xlsx report.

    ``mode`` is 'good' (accepted rows) or 'bad' (rejected rows, with a reason
    column). Dict outcomes, as echoed back by the browser, are accepted too.
    """
    if mode not in EXPORT_MODES:
        raise ValueError(f"Invalid export mode: {mode}")

    header = ['sheet', 'row'] + (['reason'] if mode == 'bad' else []) + EXPORT_COLUMNS

    rows = []
    for outcome in outcomes:
        if isinstance(outcome, dict):
            outcome = outcome_from_dict(outcome)
        record = outcome.data if outcome.accepted else outcome.original
        row = [outcome.sheet, outcome.row_number]
        if mode == 'bad':
            row.append(getattr(outcome, 'reason', ''))
        row.extend(_display(record.get(column)) for column in EXPORT_COLUMNS)
        rows.append(row)

    return _workbook_bytes('Valide' if mode == 'good' else 'Erreurs', header, rows)


def export_failed_rows(failed_rows: Iterable[Dict[str, Any]]) -> bytes:
    """Write the rows that failed during an import run to an .xlsx report."""
    rows = [[_display(item.get(column)) for column in FAILED_ROW_COLUMNS] for item in failed_rows]
    return _workbook_bytes('Erreurs', FAILED_ROW_COLUMNS, rows)
