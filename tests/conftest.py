"""Shared fixtures: workbook builders and in-memory catalog/question stores."""

from io import BytesIO

import pytest
from openpyxl import Workbook

from qbank.ingest.catalog import CatalogEntity

MCQ_HEADER = [
    'Matière', 'Cours', 'Question n°', 'Source', 'Texte de la question',
    'Option A', 'Option B', 'Option C', 'Option D', 'Option E',
    'Réponse(s)', 'Explication',
]

QROC_HEADER = [
    'Matière', 'Cours', 'Question n°', 'Source', 'Texte de la question',
    'Réponse', 'Explication',
]

CASE_QROC_HEADER = [
    'Matière', 'Cours', 'Cas n°', 'Texte du cas', 'Question n°',
    'Texte de la question', 'Réponse', 'Explication',
]

CASE_MCQ_HEADER = [
    'Matière', 'Cours', 'Cas n°', 'Texte du cas', 'Question n°', 'Texte de la question',
    'Option A', 'Option B', 'Option C', 'Option D', 'Option E',
    'Réponse(s)', 'Explication',
]


def build_workbook(sheets):
    """Build an .xlsx in memory from {sheet title: [header, *rows]}."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def mcq_row(subject='Cardiologie', course='Insuffisance cardiaque', number=1,
            text='Quel signe est typique ?', options=('Oedème', 'Fièvre'), answer='A',
            explanation='Signe de rétention hydrosodée', source='Session 2023'):
    padded = list(options) + [''] * (5 - len(options))
    return [subject, course, number, source, text, *padded, answer, explanation]


def qroc_row(subject='Cardiologie', course='Insuffisance cardiaque', number=1,
             text='Citez un diurétique', answer='Furosémide', explanation='Diurétique de l\'anse',
             source='Session 2023'):
    return [subject, course, number, source, text, answer, explanation]


@pytest.fixture
def workbook_bytes():
    return build_workbook


class FakeCatalogStore:
    def __init__(self, subjects=(), courses=(), fail_on=()):
        self.subjects = list(subjects)
        self.courses = list(courses)
        self.fail_on = set(fail_on)
        self.subject_creates = []
        self.course_creates = []

    def list_subjects(self):
        return list(self.subjects)

    def list_courses(self):
        return list(self.courses)

    def create_subject(self, name):
        if name in self.fail_on:
            raise RuntimeError('catalog unavailable')
        entity = CatalogEntity(id=f's{len(self.subjects) + 1}', name=name)
        self.subjects.append(entity)
        self.subject_creates.append(name)
        return entity

    def create_course(self, name, subject_id):
        if name in self.fail_on:
            raise RuntimeError('catalog unavailable')
        entity = CatalogEntity(id=f'c{len(self.courses) + 1}', name=name, parent_id=subject_id)
        self.courses.append(entity)
        self.course_creates.append((name, subject_id))
        return entity


class FakeQuestionStore:
    def __init__(self, fail_batches=(), skip_per_batch=0):
        self.fail_batches = set(fail_batches)
        self.skip_per_batch = skip_per_batch
        self.batches = []
        self.documents = []

    def insert_questions(self, documents):
        self.batches.append(list(documents))
        if len(self.batches) in self.fail_batches:
            raise RuntimeError('write timeout')
        inserted = documents[self.skip_per_batch:]
        self.documents.extend(inserted)
        return len(inserted)


@pytest.fixture
def catalog_store():
    return FakeCatalogStore()


@pytest.fixture
def question_store():
    return FakeQuestionStore()
