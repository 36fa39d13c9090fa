"""
Model service interfaces consumed by the retrieval core.

Dependencies: typing (stdlib)
System role: Contracts for embedding and completion collaborators
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EmbeddingClient(Protocol):
    """Converts text into a fixed-length vector."""

    async def embed(self, text: str) -> list[float]:
        """Embed text. Raises EmbeddingServiceError on upstream failure."""
        ...


@runtime_checkable
class CompletionClient(Protocol):
    """Sends a prompt to an LLM and returns generated text."""

    async def complete(self, prompt: str) -> str:
        """Complete prompt. Raises CompletionServiceError on upstream failure."""
        ...


def describe_upstream_error(exc: BaseException) -> tuple[int | str | None, str]:
    """
    Pull a status code and body out of an SDK exception.

    Google and httpx exceptions expose these under different attribute
    names; anything unrecognized falls back to the exception text.

    Args:
        exc: Exception raised by the upstream SDK

    Returns:
        tuple: (status, body)
    """
    status: Any = None
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if callable(value):
            continue
        if isinstance(value, (int, str)) and value != "":
            status = value
            break

    response = getattr(exc, "response", None)
    if status is None and response is not None:
        status = getattr(response, "status_code", None)

    body = getattr(response, "text", None) if response is not None else None
    if not isinstance(body, str) or not body:
        body = str(exc) or type(exc).__name__
    return status, body
