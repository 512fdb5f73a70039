import hashlib
import json
import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from qbank.ingest.catalog import CatalogEntity, CatalogMatcher
from qbank.ingest.errors import CatalogResolutionError
from qbank.ingest.headers import CASE_MCQ, CASE_QROC, CASE_ROLES, MCQ, QROC
from qbank.ingest.media import guess_media_type
from qbank.ingest.options import ParsedOption, build_combined_explanation
from qbank.ingest.validator import Accepted
from qbank.ingest.workbook import ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50

QUESTION_TYPES = {
    MCQ: 'mcq',
    QROC: 'qroc',
    CASE_MCQ: 'clinic_mcq',
    CASE_QROC: 'clinic_qroc',
}

_LEADING_INT = re.compile(r'^\s*(\d+)')
_LEVEL_ONLY = re.compile(r'^(PCEM|DCEM)\s*\d$', re.IGNORECASE)
_YEAR_OR_SESSION = re.compile(r'(19|20)\d{2}|session|rattrapage|principal', re.IGNORECASE)


@dataclass
class ImportReport:
    total: int = 0
    imported: int = 0
    failed: int = 0
    created_subjects: int = 0
    created_courses: int = 0
    questions_with_images: int = 0
    created_cases: int = 0
    skipped_duplicates: int = 0
    errors: List[str] = field(default_factory=list)
    failed_rows: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


def parse_int(value) -> Optional[int]:
    match = _LEADING_INT.match(str(value or ''))
    return int(match.group(1)) if match else None


def normalize_source(value) -> Optional[str]:
    """Strip wrapping brackets/quotes; drop values that only name a study level."""
    text = str(value or '').strip()
    text = re.sub(r'^\s*[\[({"]\s*', '', text)
    text = re.sub(r'\s*[\])}"]\s*$', '', text)
    text = re.sub(r'\s+', ' ', text).strip()
    if _LEVEL_ONLY.match(text) and not _YEAR_OR_SESSION.search(text):
        return None
    return text or None


def question_fingerprint(document: Dict[str, Any]) -> str:
    """Hash of every field that makes two stored questions identical."""
    keys = (
        'course_id', 'question_type', 'question_text', 'options', 'correct_answers',
        'explanation', 'course_reminder', 'source', 'question_number', 'media_url',
        'case_number', 'case_text', 'case_question_number',
    )
    payload = json.dumps({key: document.get(key) for key in keys}, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode('utf-8')).hexdigest()


def build_question_document(outcome: Accepted, subject: CatalogEntity, course: CatalogEntity) -> Dict[str, Any]:
    """Turn an accepted row into the question document stored in MongoDB."""
    data = outcome.data
    role = outcome.sheet

    document = {
        'subject_id': subject.id,
        'course_id': course.id,
        'question_type': QUESTION_TYPES[role],
        'question_text': data['question_text'],
        'question_number': parse_int(data.get('question_number')),
        'source': normalize_source(data.get('source')),
        'explanation': build_combined_explanation(data),
        'course_reminder': data.get('reminder') or None,
        'level': data.get('level') or None,
        'semester': data.get('semester') or None,
        'media_url': None,
        'media_type': None,
    }

    if data.get('image'):
        document['media_url'] = data['image']
        document['media_type'] = data.get('image_type') or guess_media_type(data['image'])

    if role in (MCQ, CASE_MCQ):
        options = []
        for opt in data.get('parsed_options') or []:
            if isinstance(opt, ParsedOption):
                opt = opt.to_dict()
            options.append({'label': opt['label'], 'text': opt['text']})
        document['options'] = options
        document['correct_answers'] = list(data.get('correct_answers') or [])
    else:
        document['answer_text'] = data['answer']
        document['correct_answers'] = [data['answer']]

    if role in CASE_ROLES:
        document['case_number'] = parse_int(data.get('case_number'))
        document['case_text'] = data.get('case_text') or None
        document['case_question_number'] = parse_int(data.get('question_number'))
    elif role == QROC and data.get('case_number'):
        # Multi-part open questions share a case number without a narrative
        document['case_number'] = parse_int(data.get('case_number'))
        document['case_question_number'] = parse_int(data.get('question_number'))

    document['fingerprint'] = question_fingerprint(document)
    return document


def _failed_row(sheet: str, row_number: int, record: Dict[str, Any], reason: str) -> Dict[str, Any]:
    return {
        'sheet': sheet,
        'row': row_number,
        'subject': record.get('subject', ''),
        'course': record.get('course', ''),
        'question_number': parse_int(record.get('question_number')),
        'question_text': record.get('question_text', ''),
        'answer': record.get('answer', ''),
        'reason': reason,
    }


class BulkImporter:
    """
    Commit accepted rows to the question store in fixed-size batches.

    Rows are resolved against the catalog one by one (creating subjects and
    courses on demand), then written batch by batch. A failed batch marks all
    of its rows failed and the run moves on to the next one.
    """

    def __init__(self, matcher: CatalogMatcher, question_store, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.matcher = matcher
        self.question_store = question_store
        self.batch_size = batch_size

    def run(self, validation: ValidationResult) -> ImportReport:
        report = ImportReport(total=validation.total)

        for rejected in validation.rejected:
            report.failed += 1
            report.errors.append(f"Row {rejected.row_number} in {rejected.sheet}: {rejected.reason}")
            report.failed_rows.append(
                _failed_row(rejected.sheet, rejected.row_number, rejected.original, rejected.reason)
            )

        pending = []
        cases = set()
        for outcome in validation.accepted:
            data = outcome.data
            try:
                subject = self.matcher.resolve_subject(data['subject'])
                course = self.matcher.resolve_course(data['course'], subject.id)
            except CatalogResolutionError as e:
                logger.error(f"Row {outcome.row_number} in {outcome.sheet}: {e}")
                report.failed += 1
                report.errors.append(f"Row {outcome.row_number} in {outcome.sheet}: {e}")
                report.failed_rows.append(_failed_row(outcome.sheet, outcome.row_number, data, str(e)))
                continue

            document = build_question_document(outcome, subject, course)
            if document['media_url']:
                report.questions_with_images += 1
            if outcome.sheet in CASE_ROLES and document.get('case_number') and document.get('case_text'):
                cases.add((str(course.id), document['case_number']))
            pending.append((outcome, document))

        report.created_subjects = self.matcher.created_subjects
        report.created_courses = self.matcher.created_courses
        report.created_cases = len(cases)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            try:
                inserted = self.question_store.insert_questions([document for _, document in batch])
            except Exception as e:
                logger.error(f"Error importing batch {batch_number}: {e}")
                report.failed += len(batch)
                report.errors.append(f"Batch {batch_number}: {e}")
                for outcome, _ in batch:
                    report.failed_rows.append(
                        _failed_row(outcome.sheet, outcome.row_number, outcome.data, f"Batch {batch_number} failed: {e}")
                    )
                continue

            report.imported += inserted
            report.skipped_duplicates += len(batch) - inserted
            logger.info(f"Imported batch {batch_number}: {inserted} of {len(batch)} questions")

        logger.info(
            f"Import completed: total {report.total}, imported {report.imported}, failed {report.failed}, "
            f"created {report.created_subjects} subjects, {report.created_courses} courses"
        )
        return report
