"""
Embedding generation task.

Embeds the chunks of one document. Calls run concurrently up to a limit,
but outcomes are returned in position order so the caller can append
them to the index in the order the chunker produced them. A failed
embedding is recorded against its chunk; sibling chunks still succeed.

Dependencies: asyncio (stdlib), docrag.boundary.llm
System role: Third stage of document ingestion pipeline
"""

import asyncio
import logging
from dataclasses import dataclass

from docrag.boundary.llm.base import EmbeddingClient
from docrag.core.exceptions import EmbeddingServiceError
from docrag.models.chunk import Chunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingOutcome:
    """Result of embedding one chunk: an embedded chunk or the error."""

    chunk: Chunk
    error: EmbeddingServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EmbeddingTask:
    """Generate embeddings for document chunks."""

    def __init__(self, client: EmbeddingClient, concurrency: int = 4) -> None:
        """
        Initialize embedding task.

        Args:
            client: Embedding service client
            concurrency: Maximum in-flight embedding calls

        Raises:
            ValueError: When concurrency is below 1
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._concurrency = concurrency

    def limiter(self) -> asyncio.Semaphore:
        """New semaphore bounding in-flight calls; share one across a whole request."""
        return asyncio.Semaphore(self._concurrency)

    async def embed(
        self,
        chunks: list[Chunk],
        limiter: asyncio.Semaphore | None = None,
    ) -> list[EmbeddingOutcome]:
        """
        Embed chunks, preserving input order in the result.

        Args:
            chunks: Unindexed chunks of a single document
            limiter: Semaphore shared by every document of one ingestion
                request (a private one is created when omitted)

        Returns:
            list[EmbeddingOutcome]: One outcome per chunk, same order
        """
        if not chunks:
            return []
        semaphore = limiter if limiter is not None else self.limiter()

        async def embed_one(chunk: Chunk) -> EmbeddingOutcome:
            async with semaphore:
                try:
                    vector = await self._client.embed(chunk.text)
                except EmbeddingServiceError as e:
                    logger.warning(
                        f"{__name__}:embed - Chunk embedding failed",
                        extra={
                            "document": chunk.source_document,
                            "position": chunk.position,
                            "error_msg": e.message,
                        },
                    )
                    return EmbeddingOutcome(chunk=chunk, error=e)
            return EmbeddingOutcome(chunk=chunk.model_copy(update={"vector": tuple(vector)}))

        return list(await asyncio.gather(*(embed_one(chunk) for chunk in chunks)))
