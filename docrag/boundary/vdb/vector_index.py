"""
In-memory vector index.

Append-only collection of embedded chunks with exhaustive cosine
similarity search. Owned by the pipeline orchestrator; there is no
module-level store.

Id policy: ids increase monotonically for the lifetime of the index
and are never reused, including across clear(). Citations issued
before a clear therefore never collide with chunks indexed after it.

Dependencies: numpy
System role: Vector store for RAG retrieval
"""

import logging
import threading
from collections import Counter
from collections.abc import Sequence

import numpy as np

from docrag.boundary.vdb.vector_schemas import TagFilter
from docrag.core.exceptions import VectorIndexError
from docrag.models.chunk import Chunk, ScoredChunk

logger = logging.getLogger(__name__)

EPSILON = 1e-12


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity with an epsilon guard for zero vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        float: dot(a, b) / (|a| * |b| + 1e-12); 0.0 when either vector is all zeros
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise VectorIndexError(
            f"Vector dimensions differ: {va.shape[0]} vs {vb.shape[0]}",
            operation="similarity",
        )
    return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb) + EPSILON))


class VectorIndex:
    """
    Process-local vector index with append-only insertion and full clear.

    Each entry is an immutable (chunk, vector) tuple appended in a single
    step under an internal lock, so concurrent searches iterate a snapshot
    and see each entry either fully present or absent.
    """

    def __init__(self) -> None:
        """Initialize an empty index."""
        self._entries: list[tuple[Chunk, np.ndarray]] = []
        self._next_id = 1
        self._dimension: int | None = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def dimension(self) -> int | None:
        """Vector dimension fixed by the first insertion (None while empty)."""
        return self._dimension

    def add(self, chunk: Chunk) -> int:
        """
        Append a chunk and assign it the next id.

        Args:
            chunk: Chunk with a populated vector

        Returns:
            int: Assigned chunk id

        Raises:
            VectorIndexError: Missing vector or dimension mismatch
        """
        if chunk.vector is None:
            raise VectorIndexError("Cannot index a chunk without a vector", operation="add")
        vector = np.asarray(chunk.vector, dtype=np.float64)

        with self._lock:
            if self._dimension is None:
                self._dimension = int(vector.shape[0])
            elif vector.shape[0] != self._dimension:
                raise VectorIndexError(
                    f"Vector dimension {vector.shape[0]} does not match index dimension {self._dimension}",
                    operation="add",
                    details={"document": chunk.source_document, "position": chunk.position},
                )
            chunk_id = self._next_id
            self._next_id += 1
            self._entries.append((chunk.model_copy(update={"id": chunk_id}), vector))

        return chunk_id

    def search(
        self,
        query_vector: Sequence[float],
        k: int,
        tag_filter: TagFilter | None = None,
    ) -> list[ScoredChunk]:
        """
        Rank stored chunks by cosine similarity to the query vector.

        Args:
            query_vector: Query embedding
            k: Maximum number of results
            tag_filter: Optional predicate over chunk tags

        Returns:
            list[ScoredChunk]: Up to k results, score descending, ties by id ascending

        Raises:
            VectorIndexError: Query dimension does not match the index
        """
        if k <= 0:
            return []
        entries = list(self._entries)
        if tag_filter is not None and not tag_filter.is_empty:
            entries = [entry for entry in entries if tag_filter.matches(entry[0].tags)]
        if not entries:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        matrix = np.vstack([vector for _, vector in entries])
        if query.shape[0] != matrix.shape[1]:
            raise VectorIndexError(
                f"Query dimension {query.shape[0]} does not match index dimension {matrix.shape[1]}",
                operation="search",
            )

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query) + EPSILON
        scores = (matrix @ query) / norms

        # Entries are in id order, so a stable sort breaks ties by id
        order = sorted(range(len(entries)), key=lambda i: -scores[i])
        return [
            ScoredChunk(chunk=entries[i][0], score=float(scores[i]))
            for i in order[:k]
        ]

    def chunks(self) -> list[Chunk]:
        """Snapshot of all indexed chunks in insertion order."""
        return [chunk for chunk, _ in list(self._entries)]

    def document_counts(self) -> dict[str, int]:
        """Chunk count per source document name."""
        return dict(Counter(chunk.source_document for chunk, _ in list(self._entries)))

    def clear(self) -> None:
        """Remove every entry. The id counter keeps increasing."""
        with self._lock:
            removed = len(self._entries)
            self._entries = []
            self._dimension = None
        logger.info(f"{__name__}:clear - Removed {removed} chunks")
