import re
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from qbank.ingest.headers import OPTION_LETTERS, normalize_label

_ANSWER_SEPARATORS = re.compile(r'[,;/+\s]+')
_LETTER_TOKEN = re.compile(r'^([A-E]+)[.)]?$')

# Literal markers meaning "this question has no valid answer"
_NO_ANSWER_PHRASES = {'pas de reponse', 'pas reponse', 'no answer'}


@dataclass
class ParsedOption:
    label: str
    text: str
    is_correct: bool = False

    def to_dict(self):
        return asdict(self)


@dataclass
class ParsedOptions:
    options: List[ParsedOption]
    correct_answers: List[str]

    @property
    def filled(self) -> List[ParsedOption]:
        """Options that actually carry text (interior gaps excluded)."""
        return [opt for opt in self.options if opt.text]


def is_explicit_no_answer(value) -> bool:
    text = str(value or '').strip()
    if not text:
        return False
    if text == '?':
        return True
    return normalize_label(text) in _NO_ANSWER_PHRASES


def parse_answer_letters(value) -> List[str]:
    """
    Tokenize an answer key like "A, C", "b/d", "A+E" or "AC" into sorted letters.

    A glued token must list distinct letters in order ("ACE"); anything else
    made of A-E letters ("BAD", "AA") voids the whole key.
    """
    letters = set()
    for token in _ANSWER_SEPARATORS.split(str(value or '').strip().upper()):
        match = _LETTER_TOKEN.match(token)
        if not match:
            continue
        run = match.group(1)
        if list(run) != sorted(set(run)):
            return []
        letters.update(run)
    return sorted(letters)


def parse_mcq_options(row: Dict[str, str]) -> ParsedOptions:
    """
    Build the option list of an MCQ row from its option_a..option_e columns.

    Trailing empty slots end the list. An empty slot followed by a filled one is
    kept (with empty text) so option labels stay aligned with the answer key.
    """
    texts = [str(row.get(f'option_{letter}') or '').strip() for letter in OPTION_LETTERS]

    last_filled = -1
    for idx, text in enumerate(texts):
        if text:
            last_filled = idx

    options = [
        ParsedOption(label=OPTION_LETTERS[idx].upper(), text=texts[idx])
        for idx in range(last_filled + 1)
    ]

    by_label = {opt.label: opt for opt in options}
    correct_answers = []
    for letter in parse_answer_letters(row.get('answer')):
        option = by_label.get(letter)
        if option is None or not option.text:
            continue
        option.is_correct = True
        correct_answers.append(letter)

    return ParsedOptions(options=options, correct_answers=correct_answers)


def has_any_explanation(row: Dict[str, str]) -> bool:
    if str(row.get('explanation') or '').strip():
        return True
    return any(str(row.get(f'explanation_{letter}') or '').strip() for letter in OPTION_LETTERS)


def build_combined_explanation(row: Dict[str, str]) -> Optional[str]:
    """Merge the global explanation with per-option explanation columns."""
    base = str(row.get('explanation') or '').strip()
    per_option = []
    for letter in OPTION_LETTERS:
        value = str(row.get(f'explanation_{letter}') or '').strip()
        if value:
            per_option.append(f'({letter.upper()}) {value}')

    if not per_option:
        return base or None

    combined = f'{base}\n\n' if base else ''
    return combined + 'Explications:\n' + '\n'.join(per_option)
