"""
Error handling utilities.

Provides a decorator that maps domain exceptions to HTTP responses with
a uniform error body across all endpoints.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from docrag.core.exceptions import (
    DocRAGException,
    EmptyIndexError,
    UpstreamServiceError,
    ValidationError,
    VectorIndexError,
)
from docrag.models.common import ErrorResponse

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def status_for(exc: DocRAGException) -> int:
    """Map a domain exception to its HTTP status code."""
    if isinstance(exc, (ValidationError, EmptyIndexError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, VectorIndexError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, UpstreamServiceError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(exc: DocRAGException) -> JSONResponse:
    """Render a domain exception as a JSON error response."""
    body = ErrorResponse(code=exc.code, error=exc.message, details=exc.details or None)
    return JSONResponse(status_code=status_for(exc), content=body.model_dump())


def handle_rag_errors(func: F) -> F:
    """
    Decorator to transform domain errors into HTTP error responses.

    This centralizes:
    - Logging of errors with their code and details
    - Mapping exception kinds to HTTP status codes
    - The {success, code, error, details} error body
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except DocRAGException as e:
            code = status_for(e)
            log = logger.warning if code < 500 else logger.error
            log(
                f"{__name__}:{func.__name__} - {e.code}: {e.message}",
                extra={"error_code": e.code, "details": e.details},
            )
            return error_response(e)

        except Exception as e:
            logger.exception(
                f"{__name__}:{func.__name__} - Unexpected failure",
                extra={"error": str(e)},
            )
            # Details stay in the log; clients get a fixed message
            return error_response(DocRAGException("An internal error occurred"))

    return wrapper  # type: ignore
