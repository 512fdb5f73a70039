"""
Rebuild the display order of a course's questions from flat stored documents.

Questions are stored one per document. Clinical cases and multi-part open
questions are only implied by shared fields: ``case_number`` when present,
otherwise an identical ``case_text``. This module turns the flat list back
into ordered display units and never drops or duplicates a question.

Two unrelated cases that happen to share the exact same narrative text are
merged into one group. That is a known limitation of text keys.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

MCQ_TYPES = ('mcq',)
CASE_TYPES = ('clinic_mcq', 'clinic_qroc')


@dataclass
class StandaloneUnit:
    question: Dict[str, Any]

    kind = 'question'

    @property
    def question_count(self) -> int:
        return 1

    def to_dict(self):
        return {'kind': self.kind, 'question': self.question}


@dataclass
class CaseGroup:
    kind: str
    case_number: Optional[Union[int, str]]
    case_text: Optional[str]
    questions: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def to_dict(self):
        return {
            'kind': self.kind,
            'case_number': self.case_number,
            'case_text': self.case_text,
            'questions': self.questions,
        }


DisplayUnit = Union[StandaloneUnit, CaseGroup]


def _number(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _by_question_number(question):
    return _number(question.get('question_number'))


def _by_case_position(question):
    return _number(question.get('case_question_number'))


def _text(value) -> str:
    return str(value or '').strip()


def _case_key(value) -> Optional[tuple]:
    """Sort key of a case identifier: numeric ids in numeric order, then the others as text."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    ident = str(value).strip() if value is not None else ''
    if not ident:
        return None
    if ident.isdigit():
        return (0, int(ident))
    return (1, ident)


def _group_open_questions(questions) -> Tuple[List[dict], List[CaseGroup]]:
    standalone = []
    buckets: Dict[tuple, List[dict]] = {}
    for question in questions:
        key = _case_key(question.get('case_number'))
        if key is None:
            standalone.append(question)
        else:
            buckets.setdefault(key, []).append(question)

    groups = []
    for key in sorted(buckets):
        members = buckets[key]
        if len(members) < 2:
            standalone.extend(members)
            continue
        groups.append(CaseGroup(
            kind='multi_qroc',
            case_number=key[1],
            case_text=None,
            questions=sorted(members, key=_by_case_position),
        ))
    return standalone, groups


def _group_cases(questions) -> Tuple[List[CaseGroup], List[dict]]:
    buckets: Dict[tuple, List[dict]] = {}
    text_keys: Dict[str, tuple] = {}
    ungrouped = []

    for question in questions:
        case_key = _case_key(question.get('case_number'))
        text = _text(question.get('case_text'))
        if case_key is not None:
            key = (0, case_key)
        elif text:
            # Synthetic keys sort after every explicit case identifier
            key = text_keys.setdefault(text, (1, len(text_keys)))
        else:
            ungrouped.append(question)
            continue
        buckets.setdefault(key, []).append(question)

    groups = []
    for key in sorted(buckets):
        members = buckets[key]
        if len(members) < 2:
            ungrouped.extend(members)
            continue
        members = sorted(members, key=_by_case_position)
        case_text = next((_text(m.get('case_text')) for m in members if _text(m.get('case_text'))), None)
        groups.append(CaseGroup(
            kind='clinical_case',
            case_number=key[1][1] if key[0] == 0 else None,
            case_text=case_text,
            questions=members,
        ))
    return groups, ungrouped


def reconstruct(questions: Iterable[Dict[str, Any]]) -> List[DisplayUnit]:
    """
    Order one course's questions into display units.

    Section order: MCQ standalones, open standalones, multi-part open groups,
    clinical case groups, then case questions that could not be grouped.
    Standalones sort by ``question_number``; group members by
    ``case_question_number``; missing numbers count as 0 and ties keep input
    order.
    """
    mcq, open_response, cases = [], [], []
    for question in questions:
        question_type = question.get('question_type')
        if question_type in MCQ_TYPES:
            mcq.append(question)
        elif question_type in CASE_TYPES:
            cases.append(question)
        else:
            open_response.append(question)

    open_standalone, open_groups = _group_open_questions(open_response)
    case_groups, case_standalone = _group_cases(cases)

    units: List[DisplayUnit] = []
    units.extend(StandaloneUnit(q) for q in sorted(mcq, key=_by_question_number))
    units.extend(StandaloneUnit(q) for q in sorted(open_standalone, key=_by_question_number))
    units.extend(open_groups)
    units.extend(case_groups)
    units.extend(StandaloneUnit(q) for q in sorted(case_standalone, key=_by_question_number))
    return units


def count_questions(units: Iterable[DisplayUnit]) -> int:
    return sum(unit.question_count for unit in units)


def progress_percentage(units: Iterable[DisplayUnit], answered_ids: Iterable[str]) -> int:
    """Share of questions answered, counting every question inside a group."""
    units = list(units)
    total = count_questions(units)
    if total == 0:
        return 0

    answered = {str(i) for i in answered_ids}
    done = 0
    for unit in units:
        members = [unit.question] if isinstance(unit, StandaloneUnit) else unit.questions
        done += sum(1 for q in members if str(q.get('_id', q.get('id'))) in answered)
    return round(done * 100 / total)
