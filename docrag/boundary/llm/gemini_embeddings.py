"""
Google Gemini embedding client.

Wraps GoogleGenerativeAIEmbeddings with input truncation, a per-call
timeout, and payload validation so every failure surfaces as
EmbeddingServiceError.

Dependencies: langchain_google_genai
System role: Embedding generation adapter
"""

import asyncio
import logging
import math

from langchain_google_genai import GoogleGenerativeAIEmbeddings

from docrag.boundary.llm.base import describe_upstream_error
from docrag.configs.llm import LLMSettings
from docrag.core.exceptions import EmbeddingServiceError

logger = logging.getLogger(__name__)


class GeminiEmbeddingClient:
    """Async embedding client backed by Google Gemini."""

    def __init__(
        self,
        settings: LLMSettings | None = None,
        embeddings: GoogleGenerativeAIEmbeddings | None = None,
    ) -> None:
        """
        Initialize the Gemini embeddings client.

        Args:
            settings: LLM settings (defaults loaded from environment)
            embeddings: Pre-built LangChain embeddings (for tests)
        """
        self._settings = settings or LLMSettings()
        if embeddings is None:
            kwargs = {"model": self._settings.embedding_model}
            if self._settings.api_key:
                kwargs["google_api_key"] = self._settings.api_key
            embeddings = GoogleGenerativeAIEmbeddings(**kwargs)
        self._embeddings = embeddings
        self._dimension = self._settings.embedding_dimension
        logger.info(
            f"{__name__}:__init__ - Initialized with model={self._settings.embedding_model}, "
            f"dimension={self._dimension}"
        )

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed (truncated to the configured input limit)

        Returns:
            list[float]: Embedding vector of the configured dimension

        Raises:
            EmbeddingServiceError: Upstream error, timeout, or malformed payload
        """
        limit = self._settings.embed_input_limit
        if len(text) > limit:
            logger.debug(f"{__name__}:embed - Truncating input from {len(text)} to {limit} chars")
            text = text[:limit]

        try:
            vector = await asyncio.wait_for(
                self._embeddings.aembed_query(text, output_dimensionality=self._dimension),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingServiceError(
                f"Embedding call timed out after {self._settings.request_timeout_seconds}s",
                status="timeout",
            ) from e
        except Exception as e:
            status, body = describe_upstream_error(e)
            raise EmbeddingServiceError(
                f"Embedding service failed: {type(e).__name__}",
                status=status,
                body=body,
            ) from e

        return self._validate(vector)

    def _validate(self, vector: object) -> list[float]:
        """Reject payloads that are not a finite numeric vector of the expected size."""
        if not isinstance(vector, (list, tuple)) or not vector:
            raise EmbeddingServiceError(
                "Embedding service returned an empty or non-list payload",
                body=repr(vector)[:200],
            )
        try:
            values = [float(v) for v in vector]
        except (TypeError, ValueError) as e:
            raise EmbeddingServiceError(
                "Embedding service returned non-numeric values",
                body=repr(vector)[:200],
            ) from e
        if not all(math.isfinite(v) for v in values):
            raise EmbeddingServiceError("Embedding service returned non-finite values")
        if len(values) != self._dimension:
            raise EmbeddingServiceError(
                f"Embedding dimension {len(values)} does not match configured {self._dimension}",
            )
        return values
