"""
Citation extraction and formatting.

Builds source entries from retrieval results. Ranks match the [[n]]
markers used in the prompt context.

Dependencies: docrag.models
System role: Citation formatting business logic
"""

from collections.abc import Sequence

from docrag.models.chunk import ScoredChunk
from docrag.models.citation import Source


class CitationBuilder:
    """Citation building business logic."""

    def __init__(self, preview_chars: int = 200) -> None:
        """
        Initialize citation builder.

        Args:
            preview_chars: Length of the text preview per source
        """
        self._preview_chars = preview_chars

    def build_sources(self, scored_chunks: Sequence[ScoredChunk]) -> list[Source]:
        """
        Build sources from retrieved chunks.

        Args:
            scored_chunks: Retrieved chunks in rank order

        Returns:
            list[Source]: One source per chunk, rank starting at 1
        """
        return [
            Source(
                rank=rank,
                document_name=scored.chunk.source_document,
                position=scored.chunk.position,
                score=round(scored.score, 6),
                preview=self._preview(scored.chunk.text),
            )
            for rank, scored in enumerate(scored_chunks, start=1)
        ]

    def _preview(self, text: str) -> str:
        if len(text) <= self._preview_chars:
            return text
        return text[: self._preview_chars].rstrip() + "..."
