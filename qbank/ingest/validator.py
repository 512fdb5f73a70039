"""
Row-level business rules for question bank workbooks.

Every data row ends in exactly one of two states: ``Accepted`` (with the
derived fields the commit step needs) or ``Rejected`` with a short reason.
Rules run in a fixed order and stop at the first failure.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from qbank.ingest.headers import MCQ_ROLES, OPEN_ROLES
from qbank.ingest.media import extract_media
from qbank.ingest.options import (
    ParsedOption,
    has_any_explanation,
    is_explicit_no_answer,
    parse_mcq_options,
)

logger = logging.getLogger(__name__)

# Rejection reasons
MISSING_CORE_FIELDS = 'missing core fields'
MISSING_OPTIONS = 'missing options'
INVALID_ANSWER_MARKER = 'invalid answer marker'
MISSING_CORRECT_ANSWERS = 'missing correct answers'
MISSING_EXPLANATION = 'missing explanation'
MISSING_ANSWER = 'missing answer'
DUPLICATE_ROW = 'duplicate row'

# Derived fields added to accepted rows (never part of the fingerprint)
DERIVED_FIELDS = ('parsed_options', 'correct_answers')


@dataclass
class RawRow:
    sheet: str
    row_number: int
    values: Dict[str, str] = field(default_factory=dict)


@dataclass
class Accepted:
    sheet: str
    row_number: int
    data: Dict[str, Any]

    accepted = True

    def to_dict(self):
        return {'sheet': self.sheet, 'row': self.row_number, 'data': _jsonable(self.data)}


@dataclass
class Rejected:
    sheet: str
    row_number: int
    reason: str
    original: Dict[str, Any]

    accepted = False

    def to_dict(self):
        return {
            'sheet': self.sheet,
            'row': self.row_number,
            'reason': self.reason,
            'original': _jsonable(self.original),
        }


ValidationOutcome = Union[Accepted, Rejected]


def _jsonable(record: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(record)
    if out.get('parsed_options'):
        out['parsed_options'] = [
            opt.to_dict() if isinstance(opt, ParsedOption) else opt
            for opt in out['parsed_options']
        ]
    return out


def outcome_from_dict(payload: Dict[str, Any]) -> ValidationOutcome:
    """Rebuild an outcome from its ``to_dict`` form (as echoed back by clients)."""
    sheet = str(payload.get('sheet') or '')
    row_number = int(payload.get('row') or 0)
    if 'reason' in payload:
        return Rejected(sheet, row_number, str(payload['reason']), dict(payload.get('original') or {}))
    return Accepted(sheet, row_number, dict(payload.get('data') or {}))


def row_fingerprint(values: Dict[str, Any]) -> str:
    """Exact-match key over every canonical column of a row."""
    return '|'.join(
        f"{key}={str(values[key] if values[key] is not None else '').strip()}"
        for key in sorted(values)
        if key not in DERIVED_FIELDS
    )


class SheetDeduplicator:
    """Remembers fingerprints seen in one sheet; the first occurrence wins."""

    def __init__(self):
        self._seen = {}

    def register(self, values: Dict[str, Any], row_number: int) -> Optional[int]:
        """Record the row; return the earlier row number if it is a repeat."""
        key = row_fingerprint(values)
        if key in self._seen:
            return self._seen[key]
        self._seen[key] = row_number
        return None


class RowValidator:
    """Validate canonicalized rows of one sheet."""

    def __init__(self, sheet_role: str):
        self.sheet_role = sheet_role
        self.deduplicator = SheetDeduplicator()

    def validate(self, raw: RawRow) -> ValidationOutcome:
        record = dict(raw.values)

        def reject(reason):
            logger.debug(f"{raw.sheet} row {raw.row_number} rejected: {reason}")
            return Rejected(raw.sheet, raw.row_number, reason, record)

        # 1. core fields
        if not record.get('subject') or not record.get('course') or not record.get('question_text'):
            return reject(MISSING_CORE_FIELDS)

        # 2. media embedded in the question text
        extraction = extract_media(record['question_text'])
        record['question_text'] = extraction.cleaned_text
        if extraction.media_url and not record.get('image'):
            record['image'] = extraction.media_url
            record['image_type'] = extraction.media_type

        derived = {}

        # 3. multiple choice rules
        if self.sheet_role in MCQ_ROLES:
            parsed = parse_mcq_options(record)
            if len(parsed.filled) < 2:
                return reject(MISSING_OPTIONS)
            if is_explicit_no_answer(record.get('answer')):
                return reject(INVALID_ANSWER_MARKER)
            if not parsed.correct_answers:
                return reject(MISSING_CORRECT_ANSWERS)
            if not has_any_explanation(record):
                return reject(MISSING_EXPLANATION)
            derived = {
                'parsed_options': parsed.options,
                'correct_answers': parsed.correct_answers,
            }

        # 4. open response rules
        elif self.sheet_role in OPEN_ROLES:
            if not record.get('answer'):
                return reject(MISSING_ANSWER)
            if not record.get('explanation'):
                return reject(MISSING_EXPLANATION)

        # 5. exact duplicate within the sheet
        first_row = self.deduplicator.register(record, raw.row_number)
        if first_row is not None:
            logger.info(f"{raw.sheet} row {raw.row_number} repeats row {first_row}")
            return reject(DUPLICATE_ROW)

        record.update(derived)
        return Accepted(raw.sheet, raw.row_number, record)

    def validate_all(self, rows: List[RawRow]) -> List[ValidationOutcome]:
        return [self.validate(row) for row in rows]
