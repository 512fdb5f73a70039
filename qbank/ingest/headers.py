"""
Header and sheet-name canonicalization for question bank workbooks.

Spreadsheets arrive with headers typed by hand ("Texte de la question",
"Réponse(s)", "Option A", "explanation"...). Everything is folded onto a fixed
vocabulary so the rest of the pipeline reads ``row['question_text']`` no matter
how the column was spelled.
"""

import re
import unicodedata
from typing import Optional

# Sheet roles
MCQ = 'qcm'
QROC = 'qroc'
CASE_MCQ = 'cas_qcm'
CASE_QROC = 'cas_qroc'

SHEET_ROLES = (MCQ, QROC, CASE_MCQ, CASE_QROC)
MCQ_ROLES = (MCQ, CASE_MCQ)
OPEN_ROLES = (QROC, CASE_QROC)
CASE_ROLES = (CASE_MCQ, CASE_QROC)

OPTION_LETTERS = ('a', 'b', 'c', 'd', 'e')

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def normalize_label(value) -> str:
    """Lower-case, strip accents, collapse punctuation and spaces."""
    text = str(value or '').lower()
    text = unicodedata.normalize('NFD', text)
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(' ', text).strip()


def _build_header_aliases():
    aliases = {
        'subject': ['matiere', 'specialite', 'subject', 'specialty'],
        'course': ['cours', 'course', 'lecture', 'chapitre'],
        'question_number': ['question n', 'question no', 'question n°', 'question number',
                            'numero', 'n question', 'num question'],
        'source': ['source', 'session'],
        'question_text': ['texte de la question', 'texte question', 'texte de question',
                          'question', 'question text', 'enonce'],
        'case_text': ['texte du cas', 'texte cas', 'cas texte', 'case text', 'enonce du cas'],
        'case_number': ['cas n', 'cas no', 'cas n°', 'case number', 'numero du cas'],
        'answer': ['reponse', 'reponse(s)', 'reponses', 'answer', 'answers', 'correct answer'],
        'explanation': ['explication', 'explication de la reponse', 'explication de la réponse',
                        'explication reponse', 'explanation', 'correction'],
        'level': ['niveau', 'level'],
        'semester': ['semestre', 'semester'],
        'reminder': ['rappel', 'rappel du cours', 'rappel cours', 'rappel_cours', 'course reminder'],
        'image': ['image', 'image url', 'image_url', 'media', 'media url', 'media_url',
                  'illustration', 'illustration url'],
    }
    for letter in OPTION_LETTERS:
        aliases[f'option_{letter}'] = [f'option {letter}', f'choix {letter}', f'proposition {letter}']
        aliases[f'explanation_{letter}'] = [f'explication {letter}', f'explanation {letter}']

    table = {}
    for canonical, spellings in aliases.items():
        # The canonical name itself must resolve to itself once normalized
        for spelling in [canonical, *spellings]:
            table[normalize_label(spelling)] = canonical
    return table


HEADER_ALIASES = _build_header_aliases()

SHEET_ALIASES = {
    MCQ: ['qcm', 'questions qcm', 'mcq'],
    QROC: ['qroc', 'croq', 'questions qroc', 'questions croq'],
    CASE_MCQ: ['cas qcm', 'cas-qcm', 'cas_qcm', 'cas clinique qcm', 'cas clinic qcm'],
    CASE_QROC: ['cas qroc', 'cas-qroc', 'cas_qroc', 'cas clinique qroc', 'cas clinic qroc',
                'cas croq', 'cas clinic croq'],
}

_SHEET_LOOKUP = {
    normalize_label(spelling): role
    for role, spellings in SHEET_ALIASES.items()
    for spelling in spellings
}


def canonicalize_header(value) -> str:
    """Map a raw column header to its canonical name (or its normalized form if unknown)."""
    normalized = normalize_label(value)
    return HEADER_ALIASES.get(normalized, normalized)


def canonicalize_sheet_name(value) -> str:
    """Map a raw sheet name to its role (or its normalized form if unknown)."""
    normalized = normalize_label(value)
    return _SHEET_LOOKUP.get(normalized, normalized)


def resolve_sheet_role(value) -> Optional[str]:
    canonical = canonicalize_sheet_name(value)
    return canonical if canonical in SHEET_ROLES else None
