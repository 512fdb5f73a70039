from .errors import IngestError, WorkbookFormatError, NoRecognizedSheetsError, CatalogResolutionError
from .headers import canonicalize_header, canonicalize_sheet_name, resolve_sheet_role
from .validator import RowValidator, Accepted, Rejected, RawRow
from .workbook import ValidationResult, validate_workbook, export_outcomes, export_failed_rows
from .catalog import CatalogEntity, CatalogMatcher
from .commit import BulkImporter, ImportReport, build_question_document

__all__ = [
    'IngestError',
    'WorkbookFormatError',
    'NoRecognizedSheetsError',
    'CatalogResolutionError',
    'canonicalize_header',
    'canonicalize_sheet_name',
    'resolve_sheet_role',
    'RowValidator',
    'Accepted',
    'Rejected',
    'RawRow',
    'ValidationResult',
    'validate_workbook',
    'export_outcomes',
    'export_failed_rows',
    'CatalogEntity',
    'CatalogMatcher',
    'BulkImporter',
    'ImportReport',
    'build_question_document',
]
