"""
Custom exception hierarchy for Tax Copilot.

Every error raised by the ingestion and query pipelines, their collaborators,
and the HTTP layer derives from ``TaxCopilotError`` so callers can catch the
whole family at once and translate it to a response code.
"""

from typing import Any, Dict, Optional


class TaxCopilotError(Exception):
    """
    Base exception for all Tax Copilot errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        cause: Optional underlying exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )


# =============================================================================
# Document Errors
# =============================================================================

class DocumentNotFoundError(TaxCopilotError):
    """
    Referenced document id has no record.

    Raised before any status change is made.
    """

    def __init__(self, document_id: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Document not found: {document_id}",
            details={"document_id": document_id},
            cause=cause,
        )
        self.document_id = document_id


class UnsupportedFormatError(TaxCopilotError):
    """
    File extension has no registered text extractor.

    Raised before any status change is made.
    """

    def __init__(self, file_name: str, extension: str | None = None):
        ext = extension if extension is not None else _extension_of(file_name)
        super().__init__(
            f"Unsupported file format: {ext or file_name}",
            details={"file_name": file_name},
        )
        self.file_name = file_name
        self.extension = ext


class InvalidStatusTransitionError(TaxCopilotError):
    """Requested document status change is not allowed from the current status."""

    def __init__(self, current: Any, target: Any):
        super().__init__(
            f"Cannot move document from {current} to {target}",
            details={"current": str(current), "target": str(target)},
        )
        self.current = current
        self.target = target


# =============================================================================
# External Collaborator Errors
# =============================================================================

class ExternalServiceError(TaxCopilotError):
    """
    An external collaborator call failed.

    Ingestion marks the document Failed and re-raises; the query pipeline
    still writes its audit entry and re-raises.
    """
    pass


class ExtractionError(ExternalServiceError):
    """Text could not be extracted from the document bytes."""
    pass


class EmbeddingError(ExternalServiceError):
    """Embedding generation failed or returned a mismatched number of vectors."""
    pass


class SearchIndexError(ExternalServiceError):
    """Search index operation (delete, index or search) failed."""
    pass


class GenerationError(ExternalServiceError):
    """Answer generation failed."""
    pass


class StorageError(ExternalServiceError):
    """Blob storage or database operation failed."""
    pass


# =============================================================================
# Other Errors
# =============================================================================

class AuditPersistenceError(TaxCopilotError):
    """
    Audit entry could not be written.

    Never surfaced by the query pipeline; logged and discarded there.
    """
    pass


class ConfigurationError(TaxCopilotError):
    """Configuration is invalid, missing, or inconsistent."""
    pass


class ValidationError(TaxCopilotError):
    """
    Request validation error.

    Pydantic also has a ValidationError; use this one for domain checks.
    """
    pass


def _extension_of(file_name: str) -> str:
    dot = file_name.rfind(".")
    return file_name[dot:].lower() if dot >= 0 else ""


# =============================================================================
# Utility Functions
# =============================================================================

def get_http_status_code(exception: Exception) -> int:
    """
    Map exception to appropriate HTTP status code.

    Args:
        exception: Exception instance

    Returns:
        HTTP status code (400-599)
    """
    # Ordered most specific first; the first isinstance match wins
    status_map = {
        ValidationError: 400,
        DocumentNotFoundError: 404,
        InvalidStatusTransitionError: 409,
        UnsupportedFormatError: 415,
        ExtractionError: 422,
        EmbeddingError: 502,
        GenerationError: 502,
        SearchIndexError: 503,
        StorageError: 503,
        ExternalServiceError: 502,
        AuditPersistenceError: 500,
        ConfigurationError: 500,
        TaxCopilotError: 500,
    }

    for exc_type, status_code in status_map.items():
        if isinstance(exception, exc_type):
            return status_code

    return 500


__all__ = [
    "TaxCopilotError",
    # Documents
    "DocumentNotFoundError",
    "UnsupportedFormatError",
    "InvalidStatusTransitionError",
    # External collaborators
    "ExternalServiceError",
    "ExtractionError",
    "EmbeddingError",
    "SearchIndexError",
    "GenerationError",
    "StorageError",
    # Other
    "AuditPersistenceError",
    "ConfigurationError",
    "ValidationError",
    # Utilities
    "get_http_status_code",
]
