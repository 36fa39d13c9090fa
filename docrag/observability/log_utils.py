"""
Structured log context for RAG records.

Log records carry documents, chunks, query text and tag filters as
`extra` fields. Those values are summarized here so a record never
embeds a whole document body or an embedding vector.

Dependencies: logging (stdlib), docrag.models, docrag.core.exceptions
System role: Logging helper functions
"""

import logging
from typing import Any

from docrag.core.exceptions import DocRAGException, UpstreamServiceError
from docrag.models.chunk import Chunk, ScoredChunk
from docrag.models.document import Document

MAX_LOG_CHARS = 300


def _clip(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[:max_length] + f"... (truncated, {len(text)} total)"
    return text


def _is_vector(value: Any) -> bool:
    return bool(value) and all(isinstance(item, float) for item in value)


def safe_log_value(value: Any, max_length: int = MAX_LOG_CHARS) -> str:
    """
    Render one context value for a log record.

    Documents and chunks are reduced to their identity and size,
    vectors to their dimension, and tag mappings to `key=value` pairs.
    Free text has its whitespace collapsed and is clipped to
    `max_length` characters.

    Args:
        value: Context value
        max_length: Maximum characters kept from free text

    Returns:
        str: Single-line summary
    """
    if value is None:
        return "None"
    if isinstance(value, Document):
        return f"Document({value.name!r}, {len(value.text)} chars, {len(value.tags)} tags)"
    if isinstance(value, Chunk):
        return f"Chunk({value.source_document!r}#{value.position}, {len(value.text)} chars)"
    if isinstance(value, ScoredChunk):
        chunk = value.chunk
        return f"ScoredChunk({chunk.source_document!r}#{chunk.position}, score={value.score:.4f})"
    if isinstance(value, DocRAGException):
        return f"{value.code}: {_clip(value.message, max_length)}"
    if isinstance(value, (bytes, bytearray)):
        return f"bytes({len(value)})"
    if isinstance(value, (list, tuple)):
        if _is_vector(value):
            return f"vector(dim={len(value)})"
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, dict):
        if all(isinstance(item, str) for item in value.values()):
            return _clip(", ".join(f"{key}={item}" for key, item in sorted(value.items())), max_length)
        return f"dict({len(value)} keys)"
    return _clip(" ".join(str(value).split()), max_length)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any,
) -> None:
    """Log `message` with every context value passed through safe_log_value."""
    logger.log(level, message, extra={key: safe_log_value(val) for key, val in context.items()})


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    **context: Any,
) -> None:
    """
    Log a failed operation at ERROR with its traceback.

    Domain errors add their error code, and upstream service errors add
    the HTTP status the service answered with.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception being reported
        **context: Additional context (query, document, tag filters, ...)
    """
    extra = {key: safe_log_value(val) for key, val in context.items()}
    extra["error_type"] = type(exc).__name__
    if isinstance(exc, DocRAGException):
        extra["error_code"] = exc.code
        extra["error_msg"] = exc.message
    else:
        extra["error_msg"] = str(exc)
    if isinstance(exc, UpstreamServiceError):
        extra["upstream_status"] = exc.status
    logger.error(message, exc_info=exc, extra=extra)
