"""
Retrieval logic with tag filtering and context budgets.

Two ranking modes share one budget policy:
- embedding retrieval against the vector index
- lexical fallback scoring for ad-hoc text that was never indexed

Dependencies: docrag.boundary, docrag.core.normalizer
System role: RAG retrieval business logic
"""

import logging
from collections.abc import Iterable, Sequence

from docrag.boundary.llm.base import EmbeddingClient
from docrag.boundary.vdb.vector_index import VectorIndex
from docrag.boundary.vdb.vector_schemas import TagFilter
from docrag.core.document_processing.tasks.chunking_task import ChunkingTask
from docrag.core.normalizer import normalize
from docrag.models.chunk import Chunk, ScoredChunk
from docrag.models.document import Document

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 2
LONG_TOKEN_LENGTH = 5
LONG_TOKEN_WEIGHT = 3
DENSITY_DIVISOR = 500
DENSITY_CAP = 5.0


def select_within_budget(
    ranked: Iterable[ScoredChunk],
    max_chars: int,
    max_chunks: int,
) -> list[ScoredChunk]:
    """
    Take chunks in rank order until the character budget or count cap binds.

    Selection stops at the first chunk that would overflow the budget;
    later, shorter chunks are not used to fill the gap so the result is
    always a prefix of the ranking.

    Args:
        ranked: Chunks sorted best-first
        max_chars: Maximum total characters of chunk text
        max_chunks: Maximum number of chunks

    Returns:
        list[ScoredChunk]: Selected prefix of the ranking
    """
    selected: list[ScoredChunk] = []
    used = 0
    for scored in ranked:
        if len(selected) >= max_chunks:
            break
        size = len(scored.chunk.text)
        if used + size > max_chars:
            break
        selected.append(scored)
        used += size
    return selected


def tokenize_query(query: str) -> list[str]:
    """Lower-cased whitespace tokens of the normalized query, dropping 1-char tokens."""
    return [token for token in normalize(query).lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def lexical_score(tokens: Sequence[str], text: str) -> float:
    """
    Score text against query tokens.

    Each case-insensitive substring occurrence counts 3 for tokens of
    5+ characters and 1 otherwise, plus a density bonus of
    min(len(text) / 500, 5).

    Args:
        tokens: Tokens from tokenize_query
        text: Chunk text

    Returns:
        float: Lexical relevance score
    """
    haystack = text.lower()
    score = 0.0
    for token in tokens:
        weight = LONG_TOKEN_WEIGHT if len(token) >= LONG_TOKEN_LENGTH else 1
        score += haystack.count(token) * weight
    return score + min(len(text) / DENSITY_DIVISOR, DENSITY_CAP)


def rank_lexical(query: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
    """
    Rank chunks by lexical score.

    Args:
        query: User query
        chunks: Candidate chunks in original order

    Returns:
        list[ScoredChunk]: Score descending; ties keep original order
    """
    tokens = tokenize_query(query)
    scored = [ScoredChunk(chunk=chunk, score=lexical_score(tokens, chunk.text)) for chunk in chunks]
    # sorted() is stable, so equal scores keep chunk order
    return sorted(scored, key=lambda item: -item.score)


class Retriever:
    """Retrieval business logic over a vector index."""

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingClient,
        chunking_task: ChunkingTask | None = None,
    ) -> None:
        """
        Initialize retriever.

        Args:
            index: Vector index to search
            embedder: Client used to embed queries
            chunking_task: Chunker for ad-hoc documents in lexical mode
        """
        self._index = index
        self._embedder = embedder
        self._chunking_task = chunking_task or ChunkingTask()

    async def retrieve(
        self,
        query: str,
        k: int,
        max_chars: int,
        max_chunks: int,
        tag_filters: dict[str, str] | None = None,
    ) -> list[ScoredChunk]:
        """
        Embedding retrieval with tag filtering and budget enforcement.

        Args:
            query: User query
            k: Number of nearest chunks to consider
            max_chars: Character budget for selected chunks
            max_chunks: Hard cap on selected chunks
            tag_filters: Optional tag substring filters

        Returns:
            list[ScoredChunk]: Ranked chunks within budget (may be empty)

        Raises:
            EmbeddingServiceError: Query embedding failed
        """
        query_vector = await self._embedder.embed(normalize(query))
        ranked = self._index.search(query_vector, k, TagFilter.from_mapping(tag_filters))
        selected = select_within_budget(ranked, max_chars, max_chunks)
        logger.info(
            f"{__name__}:retrieve - Selected {len(selected)} of {len(ranked)} ranked chunks",
            extra={"k": k, "max_chars": max_chars, "tag_filters": tag_filters},
        )
        return selected

    def retrieve_lexical(
        self,
        query: str,
        documents: Sequence[Document],
        max_chars: int,
        max_chunks: int,
    ) -> list[ScoredChunk]:
        """
        Lexical fallback retrieval over documents that are not indexed.

        Args:
            query: User query
            documents: Ad-hoc documents supplied with the request
            max_chars: Character budget for selected chunks
            max_chunks: Hard cap on selected chunks

        Returns:
            list[ScoredChunk]: Ranked chunks within budget
        """
        chunks = [chunk for document in documents for chunk in self._chunking_task.chunk(document)]
        ranked = rank_lexical(query, chunks)
        selected = select_within_budget(ranked, max_chars, max_chunks)
        logger.info(
            f"{__name__}:retrieve_lexical - Selected {len(selected)} of {len(chunks)} chunks "
            f"from {len(documents)} documents"
        )
        return selected
