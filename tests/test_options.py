from qbank.ingest.options import (
    build_combined_explanation,
    has_any_explanation,
    is_explicit_no_answer,
    parse_answer_letters,
    parse_mcq_options,
)


def _row(options, answer):
    row = {f'option_{letter}': text for letter, text in zip('abcde', options)}
    row['answer'] = answer
    return row


def test_trailing_empty_options_are_dropped():
    parsed = parse_mcq_options(_row(['Paris', 'Lyon', '', ''], 'A'))
    assert [opt.to_dict() for opt in parsed.options] == [
        {'label': 'A', 'text': 'Paris', 'is_correct': True},
        {'label': 'B', 'text': 'Lyon', 'is_correct': False},
    ]
    assert parsed.correct_answers == ['A']


def test_interior_gap_keeps_labels_aligned():
    parsed = parse_mcq_options(_row(['Paris', '', 'Lyon'], 'C'))
    assert [opt.label for opt in parsed.options] == ['A', 'B', 'C']
    assert [opt.label for opt in parsed.filled] == ['A', 'C']
    assert parsed.correct_answers == ['C']


def test_answer_pointing_at_missing_option_is_ignored():
    parsed = parse_mcq_options(_row(['Paris', 'Lyon'], 'A, D'))
    assert parsed.correct_answers == ['A']


def test_answer_key_formats():
    assert parse_answer_letters('A, C') == ['A', 'C']
    assert parse_answer_letters('b/d') == ['B', 'D']
    assert parse_answer_letters('A+E') == ['A', 'E']
    assert parse_answer_letters('AC') == ['A', 'C']
    assert parse_answer_letters('C. A)') == ['A', 'C']
    assert parse_answer_letters('Furosémide') == []
    assert parse_answer_letters(None) == []


def test_explicit_no_answer_markers():
    assert is_explicit_no_answer('?')
    assert is_explicit_no_answer(' Pas de réponse ')
    assert not is_explicit_no_answer('A')
    assert not is_explicit_no_answer('')


def test_per_option_explanations_count_as_explanation():
    assert has_any_explanation({'explanation_b': 'Faux car ...'})
    assert not has_any_explanation({'explanation': '  '})


def test_combined_explanation():
    row = {'explanation': 'Général', 'explanation_a': 'Vrai', 'explanation_c': 'Faux'}
    assert build_combined_explanation(row) == 'Général\n\nExplications:\n(A) Vrai\n(C) Faux'
    assert build_combined_explanation({'explanation': 'Seule'}) == 'Seule'
    assert build_combined_explanation({}) is None


def test_stray_word_in_answer_cell_is_not_an_answer_key():
    assert parse_answer_letters('BAD') == []
    assert parse_answer_letters('AA') == []
    assert parse_answer_letters('A, DEAD') == []
    assert parse_answer_letters('ACE') == ['A', 'C', 'E']


def test_stray_word_leaves_no_correct_answer():
    parsed = parse_mcq_options(_row(['Paris', 'Lyon', 'Nice', 'Lille'], 'BAD'))
    assert parsed.correct_answers == []
    assert not any(opt.is_correct for opt in parsed.options)
