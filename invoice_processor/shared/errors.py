"""Exception taxonomy for invoice processing.

Request-level failures map to HTTP status codes in the API layer.
Persistence failures are never surfaced to the caller.
"""


class InvoiceProcessingError(Exception):
    """Base class for all invoice processing errors."""


class InvalidRequest(InvoiceProcessingError):
    """Inbound job is missing required fields."""


class UnreachableSource(InvoiceProcessingError):
    """Invoice image could not be fetched from storage."""


class AnalysisFailure(InvoiceProcessingError):
    """Document analysis failed or returned no documents."""


class PersistenceFailure(InvoiceProcessingError):
    """Document store read or write failed."""


class DocumentNotFound(PersistenceFailure):
    """Update targeted a document that does not exist."""


class WriteConflict(PersistenceFailure):
    """Conditional write lost against a concurrent writer."""
