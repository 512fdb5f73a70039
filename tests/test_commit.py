import pytest

from conftest import (
    CASE_QROC_HEADER,
    MCQ_HEADER,
    FakeCatalogStore,
    FakeQuestionStore,
    build_workbook,
    mcq_row,
)
from qbank.ingest.catalog import CatalogEntity, CatalogMatcher
from qbank.ingest.commit import (
    BulkImporter,
    build_question_document,
    normalize_source,
    parse_int,
)
from qbank.ingest.validator import Accepted
from qbank.ingest.workbook import validate_workbook

SUBJECT = CatalogEntity('s1', 'Cardiologie')
COURSE = CatalogEntity('c1', 'Insuffisance cardiaque', parent_id='s1')


def run_import(content, catalog=None, questions=None, batch_size=50):
    catalog = catalog or FakeCatalogStore()
    questions = questions or FakeQuestionStore()
    importer = BulkImporter(CatalogMatcher.from_store(catalog), questions, batch_size=batch_size)
    return importer.run(validate_workbook(content)), catalog, questions


def mcq_sheet(count):
    return [MCQ_HEADER] + [mcq_row(number=i, text=f'Question {i}') for i in range(1, count + 1)]


def test_accepted_rows_are_committed_and_catalog_created():
    report, catalog, questions = run_import(build_workbook({'QCM': mcq_sheet(3)}))

    assert report.total == 3
    assert report.imported == 3
    assert report.failed == 0
    assert report.created_subjects == 1
    assert report.created_courses == 1
    assert catalog.subject_creates == ['Cardiologie']
    assert len(questions.documents) == 3


def test_rejections_are_reported_as_failures():
    content = build_workbook({'QCM': [MCQ_HEADER, mcq_row(), mcq_row(answer='?')]})

    report, _, _ = run_import(content)

    assert report.imported == 1
    assert report.failed == 1
    assert report.errors == ['Row 3 in qcm: invalid answer marker']
    assert report.failed_rows[0]['reason'] == 'invalid answer marker'


def test_failed_batch_counts_all_rows_and_later_batches_continue():
    questions = FakeQuestionStore(fail_batches={2})

    report, _, _ = run_import(build_workbook({'QCM': mcq_sheet(5)}), questions=questions, batch_size=2)

    assert len(questions.batches) == 3
    assert report.imported == 3
    assert report.failed == 2
    assert report.errors == ['Batch 2: write timeout']
    assert [row['row'] for row in report.failed_rows] == [4, 5]


def test_catalog_failure_fails_only_its_rows():
    content = build_workbook({'QCM': [
        MCQ_HEADER,
        mcq_row(subject='Neurologie', text='Q1'),
        mcq_row(text='Q2'),
    ]})

    report, _, questions = run_import(content, catalog=FakeCatalogStore(fail_on={'Neurologie'}))

    assert report.imported == 1
    assert report.failed == 1
    assert 'Neurologie' in report.errors[0]
    assert questions.documents[0]['question_text'] == 'Q2'


def test_store_skipped_duplicates_are_counted():
    questions = FakeQuestionStore(skip_per_batch=1)

    report, _, _ = run_import(build_workbook({'QCM': mcq_sheet(3)}), questions=questions)

    assert report.imported == 2
    assert report.skipped_duplicates == 1


def test_error_order_rejections_then_catalog_then_batches():
    content = build_workbook({'QCM': [
        MCQ_HEADER,
        mcq_row(subject='Neurologie', text='Q1'),
        mcq_row(text='Q2'),
        mcq_row(text='Q3', explanation=''),
    ]})
    questions = FakeQuestionStore(fail_batches={1})

    report, _, _ = run_import(content, catalog=FakeCatalogStore(fail_on={'Neurologie'}), questions=questions)

    assert report.errors[0] == 'Row 4 in qcm: missing explanation'
    assert report.errors[1].startswith('Row 2 in qcm:')
    assert report.errors[2] == 'Batch 1: write timeout'
    assert report.failed == 3


def test_case_statistics():
    content = build_workbook({'Cas QROC': [
        CASE_QROC_HEADER,
        ['Cardio', 'IDM', 1, 'Homme de 60 ans, douleur thoracique', 1, 'Diagnostic ?', 'IDM', 'ECG'],
        ['Cardio', 'IDM', 1, 'Homme de 60 ans, douleur thoracique', 2, 'Traitement ?', 'Angioplastie', 'Reco'],
        ['Cardio', 'IDM', 2, 'Femme de 45 ans', 1, 'Examen ?', 'Troponine', 'Marqueur'],
    ]})

    report, _, questions = run_import(content)

    assert report.created_cases == 2
    assert [d['case_question_number'] for d in questions.documents] == [1, 2, 1]
    assert {d['question_type'] for d in questions.documents} == {'clinic_qroc'}


def test_question_document_for_mcq():
    outcome = Accepted('qcm', 2, {
        'subject': 'Cardiologie',
        'course': 'Insuffisance cardiaque',
        'question_number': '7',
        'question_text': 'Signe typique ?',
        'source': '[PCEM2]',
        'option_a': 'Oedème',
        'option_b': 'Fièvre',
        'answer': 'A',
        'explanation': 'Rétention',
        'explanation_b': 'Non spécifique',
        'reminder': 'Rappel physiopathologique',
        'image': 'https://i.imgur.com/ecg.png',
        'image_type': 'image/png',
        'parsed_options': [{'label': 'A', 'text': 'Oedème', 'is_correct': True},
                           {'label': 'B', 'text': 'Fièvre', 'is_correct': False}],
        'correct_answers': ['A'],
    })

    document = build_question_document(outcome, SUBJECT, COURSE)

    assert document['question_type'] == 'mcq'
    assert document['course_id'] == 'c1'
    assert document['question_number'] == 7
    assert document['source'] is None
    assert document['options'] == [{'label': 'A', 'text': 'Oedème'}, {'label': 'B', 'text': 'Fièvre'}]
    assert document['correct_answers'] == ['A']
    assert document['explanation'] == 'Rétention\n\nExplications:\n(B) Non spécifique'
    assert document['course_reminder'] == 'Rappel physiopathologique'
    assert document['media_url'] == 'https://i.imgur.com/ecg.png'
    assert len(document['fingerprint']) == 40


def test_question_document_for_open_response():
    outcome = Accepted('qroc', 3, {
        'subject': 'Cardiologie', 'course': 'IC', 'question_text': 'Un diurétique ?',
        'answer': 'Furosémide', 'explanation': 'Anse', 'source': 'Session principale 2022',
    })

    document = build_question_document(outcome, SUBJECT, COURSE)

    assert document['question_type'] == 'qroc'
    assert document['answer_text'] == 'Furosémide'
    assert document['correct_answers'] == ['Furosémide']
    assert document['source'] == 'Session principale 2022'
    assert 'case_number' not in document


def test_fingerprint_is_stable():
    outcome = Accepted('qroc', 3, {'subject': 'S', 'course': 'C', 'question_text': 'Q',
                                   'answer': 'R', 'explanation': 'E'})
    first = build_question_document(outcome, SUBJECT, COURSE)['fingerprint']
    again = build_question_document(Accepted('qroc', 9, dict(outcome.data)), SUBJECT, COURSE)['fingerprint']
    assert first == again


@pytest.mark.parametrize('raw, expected', [
    ('[DCEM1 2021]', 'DCEM1 2021'),
    ('(Session de rattrapage)', 'Session de rattrapage'),
    ('PCEM2', None),
    ('DCEM 3', None),
    ('  ', None),
])
def test_normalize_source(raw, expected):
    assert normalize_source(raw) == expected


def test_parse_int():
    assert parse_int('12') == 12
    assert parse_int('3b') == 3
    assert parse_int('') is None
    assert parse_int(None) is None


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BulkImporter(CatalogMatcher([], [], []), FakeQuestionStore(), batch_size=0)


def test_level_and_semester_are_kept_as_labels():
    outcome = Accepted('qroc', 2, {
        'subject': 'Cardiologie', 'course': 'IC', 'question_text': 'Un diurétique ?',
        'answer': 'Furosémide', 'explanation': 'Anse', 'level': 'DCEM1', 'semester': 'S2',
    })

    document = build_question_document(outcome, SUBJECT, COURSE)

    assert document['level'] == 'DCEM1'
    assert document['semester'] == 'S2'
