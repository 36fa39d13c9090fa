"""
Text chunking task using fixed-size overlapping windows.

Splits normalized document text into windows whose start offsets advance
by (size - overlap). Window positions are the citation anchors, so the
emission order is the only ordering chunks ever have.

Dependencies: docrag.core.normalizer, docrag.models
System role: Second stage of document ingestion pipeline
"""

from collections.abc import Iterator

from docrag.core.normalizer import normalize
from docrag.models.chunk import Chunk
from docrag.models.document import Document


class TextWindows:
    """Lazy, restartable sequence of overlapping text windows."""

    def __init__(self, text: str, size: int, overlap: int) -> None:
        """
        Initialize window sequence.

        Args:
            text: Text to split
            size: Window size in characters
            overlap: Characters shared by consecutive windows

        Raises:
            ValueError: When overlap is not in [0, size)
        """
        if size <= 0:
            raise ValueError(f"chunk size must be positive, got {size}")
        if not 0 <= overlap < size:
            raise ValueError(f"chunk overlap must satisfy 0 <= overlap < size, got {overlap}")
        self.text = text
        self.size = size
        self.overlap = overlap

    @property
    def stride(self) -> int:
        """Distance between consecutive window starts."""
        return self.size - self.overlap

    def __iter__(self) -> Iterator[str]:
        length = len(self.text)
        offset = 0
        while offset < length:
            end = min(offset + self.size, length)
            yield self.text[offset:end]
            if end >= length:
                return
            offset += self.stride

    def __len__(self) -> int:
        length = len(self.text)
        if length == 0:
            return 0
        if length <= self.size:
            return 1
        # ceil((length - size) / stride) windows after the first one
        return 1 + -(-(length - self.size) // self.stride)


def chunk_text(text: str, size: int, overlap: int) -> TextWindows:
    """
    Split text into overlapping fixed-size windows.

    Args:
        text: Text to split
        size: Window size in characters
        overlap: Characters shared by consecutive windows

    Returns:
        TextWindows: Re-iterable window sequence (empty for empty text)
    """
    return TextWindows(text, size, overlap)


class ChunkingTask:
    """Normalize documents and split them into positioned chunks."""

    def __init__(
        self,
        chunk_size: int = 1200,
        chunk_overlap: int = 200,
    ) -> None:
        """
        Initialize chunking task with window configuration.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Overlap between consecutive chunks

        Raises:
            ValueError: When overlap is not in [0, chunk_size)
        """
        # Validates the configuration eagerly
        TextWindows("", chunk_size, chunk_overlap)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    def chunk(self, document: Document) -> list[Chunk]:
        """
        Split a document into chunks.

        Args:
            document: Document with raw text

        Returns:
            list[Chunk]: Unindexed chunks with positions 0..n-1 and copied tags
        """
        text = normalize(document.text)
        return [
            Chunk(
                source_document=document.name,
                position=position,
                text=window,
                tags=dict(document.tags),
            )
            for position, window in enumerate(
                chunk_text(text, self._chunk_size, self._chunk_overlap)
            )
        ]
