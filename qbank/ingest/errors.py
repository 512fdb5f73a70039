class IngestError(Exception):
    """Base class for failures raised by the question import pipeline."""


class WorkbookFormatError(IngestError, ValueError):
    """The uploaded file is not a readable .xlsx workbook."""


class NoRecognizedSheetsError(IngestError, ValueError):
    """None of the question sheets (qcm, qroc, cas_qcm, cas_qroc) is present."""

    def __init__(self, sheet_names):
        self.sheet_names = list(sheet_names)
        found = ', '.join(self.sheet_names) or 'none'
        super().__init__(
            f"No question sheet found (expected qcm, qroc, cas_qcm or cas_qroc; found: {found})"
        )


class CatalogResolutionError(IngestError):
    """A subject or course could not be created in the catalog."""
