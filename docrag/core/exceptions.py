"""
Exception hierarchy for the DocRAG service.

Provides layered exception structure for domain-specific errors.
Every exception carries a machine-readable code plus a context dict
for observability and for the error body returned to API callers.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class DocRAGException(Exception):
    """Base exception for all DocRAG errors."""

    code: str = "INTERNAL_ERROR"

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

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the error body shape used by the API."""
        return {
            "success": False,
            "code": self.code,
            "error": self.message,
            "details": self.details,
        }


class ValidationError(DocRAGException):
    """Raised when request fields are missing or malformed."""

    code = "VALIDATION_ERROR"

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


class ExtractionError(DocRAGException):
    """Raised when a document's text cannot be extracted."""

    code = "EXTRACTION_ERROR"

    def __init__(
        self,
        message: str,
        document_name: str | None = None,
        mime_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize extraction error.

        Args:
            message: Error message
            document_name: Name of the document that failed
            mime_type: Declared media type of the document
            details: Additional context
        """
        details = details or {}
        if document_name:
            details["document_name"] = document_name
        if mime_type:
            details["mime_type"] = mime_type
        super().__init__(message, details)


class UpstreamServiceError(DocRAGException):
    """Base exception for failures of external model services."""

    code = "UPSTREAM_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        status: int | str | None = None,
        body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize upstream error.

        Args:
            message: Error message
            status: Upstream status code, or "timeout"
            body: Upstream response body (truncated for diagnostics)
            details: Additional context
        """
        self.status = status
        self.body = body
        details = details or {}
        if status is not None:
            details["status"] = status
        if body:
            details["body"] = body[:1000]
        super().__init__(message, details)


class EmbeddingServiceError(UpstreamServiceError):
    """Raised when the embedding service errors or returns a malformed payload."""

    code = "EMBEDDING_SERVICE_ERROR"


class CompletionServiceError(UpstreamServiceError):
    """Raised when the chat-completion service returns a non-success response."""

    code = "COMPLETION_SERVICE_ERROR"


class EmptyIndexError(DocRAGException):
    """Raised when a query is issued against an index with no chunks."""

    code = "EMPTY_INDEX"

    def __init__(
        self,
        message: str = "No documents have been indexed yet. Ingest documents before asking questions.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class MalformedCompletionOutput(DocRAGException):
    """Raised when structured completion output cannot be parsed.

    Carries the raw text and a typed best-effort fallback so callers
    can recover without dropping the model's content.
    """

    code = "MALFORMED_COMPLETION_OUTPUT"

    def __init__(
        self,
        message: str,
        raw: str,
        fallback: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize malformed output error.

        Args:
            message: Error message
            raw: Raw completion text that failed to parse
            fallback: Structured wrapper around the raw text
            details: Additional context
        """
        self.raw = raw
        self.fallback = fallback
        super().__init__(message, details)


class VectorIndexError(DocRAGException):
    """Raised when vector index operations fail."""

    code = "VECTOR_INDEX_ERROR"

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector index error.

        Args:
            message: Error message
            operation: Operation that failed (add, search)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
