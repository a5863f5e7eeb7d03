"""
Exception hierarchy for the class materials pipeline.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ClassRagException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(ClassRagException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class DocumentNotFoundError(ClassRagException):
    """Raised when a document cannot be found."""

    def __init__(self, document_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["document_id"] = document_id
        super().__init__(f"Document not found: {document_id}", details)


class InvalidStateError(ClassRagException):
    """Raised when a lifecycle transition is not allowed from the current status."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        status: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if document_id:
            details["document_id"] = document_id
        if status:
            details["status"] = status
        super().__init__(message, details)


class ContentStoreError(ClassRagException):
    """Raised when the raw document store cannot be read or written."""

    def __init__(
        self,
        message: str,
        location: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if location:
            details["location"] = location
        super().__init__(message, details)


class DocumentProcessingError(ClassRagException):
    """Base exception for document processing errors."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            document_id: ID of the document that failed
            details: Additional context
        """
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class ExtractionError(DocumentProcessingError):
    """Raised when a buffer cannot be parsed or yields no text. Terminal."""

    def __init__(
        self,
        message: str,
        mime_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if mime_type:
            details["mime_type"] = mime_type
        super().__init__(message, details=details)


class ChunkingError(DocumentProcessingError):
    """Raised when chunking produces no parent chunks. Terminal."""

    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails. Retryable by reprocessing."""

    pass


class ImageDescriptionError(DocumentProcessingError):
    """Raised when any image description fails; aborts the whole document."""

    def __init__(
        self,
        message: str,
        page_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if page_number is not None:
            details["page_number"] = page_number
        super().__init__(message, details=details)


class StorageTransactionError(DocumentProcessingError):
    """Raised when the bulk chunk insert fails and was rolled back. Retryable."""

    pass


class SearchError(ClassRagException):
    """Raised when a retrieval query fails."""

    def __init__(
        self,
        message: str,
        collection_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize search error.

        Args:
            message: Error message
            collection_id: Collection searched by the failed query
            details: Additional context
        """
        details = details or {}
        if collection_id:
            details["collection_id"] = collection_id
        super().__init__(message, details)
