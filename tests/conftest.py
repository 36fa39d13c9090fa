"""
Shared test fixtures and configuration for entire test suite.

Provides: deterministic embedding and completion fakes, pipeline and document fixtures
Dependencies: pytest, docrag
System role: Test infrastructure and fixture management
"""

import asyncio
import re
import zlib

import pytest

from docrag.application.rag_pipeline import RAGPipeline
from docrag.configs.retrieval import RetrievalSettings
from docrag.core.exceptions import CompletionServiceError, EmbeddingServiceError
from docrag.models.document import Document

FAKE_DIMENSION = 64

_TOKEN = re.compile(r"[a-z0-9]+")


class InFlightTracker:
    """Counts concurrent calls and remembers the highest count seen."""

    def __init__(self) -> None:
        self.in_flight = 0
        self.peak = 0

    async def __aenter__(self) -> None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        # Yield so sibling calls get a chance to overlap with this one
        await asyncio.sleep(0)

    async def __aexit__(self, *exc_info) -> None:
        self.in_flight -= 1


class FakeEmbeddingClient:
    """
    Deterministic bag-of-words embedder.

    Each lower-cased alphanumeric token increments one bucket chosen by
    CRC32, so texts sharing words have high cosine similarity.
    """

    def __init__(self, dimension: int = FAKE_DIMENSION, fail_on: str | None = None) -> None:
        self.dimension = dimension
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.tracker = InFlightTracker()

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        async with self.tracker:
            if self.fail_on is not None and self.fail_on in text:
                raise EmbeddingServiceError("Fake embedding failure", status=503, body="unavailable")
            vector = [0.0] * self.dimension
            for token in _TOKEN.findall(text.lower()):
                vector[zlib.crc32(token.encode()) % self.dimension] += 1.0
            return vector


class FakeCompletionClient:
    """Completion fake that echoes the prompt unless a response is configured."""

    def __init__(self, response: str | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: list[str] = []
        self.tracker = InFlightTracker()

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        async with self.tracker:
            if self.error is not None:
                raise self.error
            return prompt if self.response is None else self.response


@pytest.fixture
def retrieval_settings() -> RetrievalSettings:
    """Default retrieval settings independent of the environment."""
    return RetrievalSettings(
        chunk_size=1200,
        chunk_overlap=200,
        top_k=8,
        max_context_chars=12000,
        max_chunks=50,
        preview_chars=200,
        summary_chunk_size=4000,
        summary_chunk_overlap=0,
    )


@pytest.fixture
def embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def completer() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def pipeline(
    embedder: FakeEmbeddingClient,
    completer: FakeCompletionClient,
    retrieval_settings: RetrievalSettings,
) -> RAGPipeline:
    """Pipeline wired to fakes with a fresh index."""
    return RAGPipeline(embedder=embedder, completer=completer, settings=retrieval_settings)


@pytest.fixture
def relay_document() -> Document:
    """Short wiring note that fits in one chunk."""
    return Document(
        name="spec.txt",
        text="The brake relay X1 operates at 24VDC. See panel 3001 for wiring.",
    )


@pytest.fixture
def filler_text() -> str:
    """3000 characters of filler, long enough for three 1200/200 chunks."""
    sentence = "Filler sentence about conveyor maintenance. "
    return (sentence * (3000 // len(sentence) + 1))[:3000]


@pytest.fixture
def completion_failure() -> CompletionServiceError:
    return CompletionServiceError("Fake completion failure", status=500, body="boom")


@pytest.fixture
def make_embedder():
    """Factory for embedders that fail on chunks containing a marker."""
    return FakeEmbeddingClient


@pytest.fixture
def make_completer():
    """Factory for completion fakes with a fixed response or error."""
    return FakeCompletionClient
