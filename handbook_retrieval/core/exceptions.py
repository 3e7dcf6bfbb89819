"""
Exception hierarchy for the handbook retrieval engine.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the engine
"""

from typing import Any


class HandbookRetrievalException(Exception):
    """Base exception for all retrieval engine errors."""

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

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(HandbookRetrievalException):
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


class InvalidChunkConfigError(ValidationError):
    """Raised when chunk size/overlap parameters are unusable."""

    def __init__(self, max_size: int, overlap: int, reason: str) -> None:
        """
        Initialize chunk configuration error.

        Args:
            max_size: Requested maximum chunk size
            overlap: Requested overlap
            reason: Which constraint was violated
        """
        super().__init__(
            f"Invalid chunk configuration: {reason}",
            field="overlap" if "overlap" in reason else "max_size",
            details={"max_size": max_size, "overlap": overlap},
        )


class DocumentProcessingError(HandbookRetrievalException):
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


class EmbeddingProviderError(DocumentProcessingError):
    """Raised when the embedding provider fails or times out."""

    def __init__(
        self,
        provider_message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize embedding provider error.

        Args:
            provider_message: Error text reported by the provider
            document_id: Document being embedded, if any
            details: Additional context
        """
        self.provider_message = provider_message
        super().__init__(
            f"Embedding provider failed: {provider_message}",
            document_id,
            details,
        )


class IngestionError(DocumentProcessingError):
    """Raised when a multi-step ingestion cannot be completed."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize ingestion error.

        Args:
            message: Error message
            document_id: Document being ingested
            stage: Pipeline stage that failed (chunk, embed, upsert, track)
            details: Additional context
        """
        details = details or {}
        if stage:
            details["stage"] = stage
        self.stage = stage
        super().__init__(message, document_id, details)


class VectorStoreError(HandbookRetrievalException):
    """Raised when vector store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (upsert, query, delete)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class StorageUnavailableError(HandbookRetrievalException):
    """Raised when a storage backend is not initialized or unreachable."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        backend: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage unavailable error.

        Args:
            message: Error message
            operation: Operation that was attempted
            backend: Backend name (local, s3)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        if backend:
            details["backend"] = backend
        super().__init__(message, details)


class TrackingError(HandbookRetrievalException):
    """Raised when the document tracking snapshot cannot be read or written."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class SnapshotConflictError(TrackingError):
    """Raised when the snapshot changed since it was loaded."""

    pass
