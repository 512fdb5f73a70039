"""
Fuzzy resolution of free-text subject/course names against the catalog.

A matcher is built once per import run from a snapshot of the catalog and is
not thread-safe. Entities created during the run are memoized by the raw name
that caused their creation, so a hundred rows naming the same unknown subject
create it once. Catalog changes made by someone else after the snapshot was
taken are not seen until the next run.
"""

import logging
import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Dict, Iterable, List, Optional, Tuple

from qbank.ingest.errors import CatalogResolutionError

logger = logging.getLogger(__name__)


@dataclass
class CatalogEntity:
    id: str
    name: str
    parent_id: Optional[str] = None


def fold_accents(value: str) -> str:
    decomposed = unicodedata.normalize('NFD', value)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def _substring_match(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def _best(query: str, candidates: List[CatalogEntity]) -> Optional[CatalogEntity]:
    """Deterministic tie-break: closest spelling, then shortest name, then id."""
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda entity: (
            -SequenceMatcher(None, query, entity.name.casefold()).ratio(),
            len(entity.name),
            str(entity.id),
        ),
    )


def find_match(name: str, entities: Iterable[CatalogEntity]) -> Tuple[Optional[CatalogEntity], Optional[str]]:
    """
    Find the entity matching ``name``.

    Tiers, first hit wins: exact (case-insensitive), substring in either
    direction, then substring with accents folded. Returns the entity and the
    tier name, or (None, None).
    """
    query = name.strip().casefold()
    if not query:
        return None, None
    entities = list(entities)

    exact = [e for e in entities if e.name.strip().casefold() == query]
    if exact:
        return _best(query, exact), 'exact'

    partial = [e for e in entities if _substring_match(query, e.name.strip().casefold())]
    if partial:
        return _best(query, partial), 'substring'

    folded_query = fold_accents(query)
    folded = [
        e for e in entities
        if _substring_match(folded_query, fold_accents(e.name.strip().casefold()))
    ]
    if folded:
        return _best(query, folded), 'accent-folded'

    return None, None


class CatalogMatcher:
    """Resolve subjects and courses for one import run, creating what is missing."""

    def __init__(self, store, subjects: Iterable[CatalogEntity], courses: Iterable[CatalogEntity]):
        self.store = store
        self.subjects = list(subjects)
        self.courses = list(courses)
        self._subject_memo: Dict[str, CatalogEntity] = {}
        self._course_memo: Dict[Tuple[str, str], CatalogEntity] = {}
        self.created_subjects = 0
        self.created_courses = 0

    @classmethod
    def from_store(cls, store):
        """Take the per-run catalog snapshot."""
        return cls(store, store.list_subjects(), store.list_courses())

    def resolve_subject(self, name: str) -> CatalogEntity:
        if name in self._subject_memo:
            return self._subject_memo[name]

        entity, tier = find_match(name, self.subjects)
        if entity is None:
            try:
                entity = self.store.create_subject(name.strip())
            except Exception as e:
                raise CatalogResolutionError(f'Failed to create subject "{name}": {e}') from e
            self.subjects.append(entity)
            self.created_subjects += 1
            logger.info(f"Created subject: {entity.name} (ID: {entity.id})")
        else:
            logger.debug(f'Subject "{name}" matched "{entity.name}" ({tier})')

        self._subject_memo[name] = entity
        return entity

    def resolve_course(self, name: str, subject_id: str) -> CatalogEntity:
        memo_key = (str(subject_id), name)
        if memo_key in self._course_memo:
            return self._course_memo[memo_key]

        scoped = [c for c in self.courses if str(c.parent_id) == str(subject_id)]
        entity, tier = find_match(name, scoped)
        if entity is None:
            try:
                entity = self.store.create_course(name.strip(), subject_id)
            except Exception as e:
                raise CatalogResolutionError(f'Failed to create course "{name}": {e}') from e
            self.courses.append(entity)
            self.created_courses += 1
            logger.info(f"Created course: {entity.name} (ID: {entity.id})")
        else:
            logger.debug(f'Course "{name}" matched "{entity.name}" ({tier})')

        self._course_memo[memo_key] = entity
        return entity
