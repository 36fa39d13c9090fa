"""Pipeline tasks for document ingestion."""

from .chunking_task import ChunkingTask, TextWindows, chunk_text
from .embedding_task import EmbeddingOutcome, EmbeddingTask
from .parsing_task import DocumentExtractor, ExtractedText

__all__ = [
    "ChunkingTask",
    "DocumentExtractor",
    "EmbeddingOutcome",
    "EmbeddingTask",
    "ExtractedText",
    "TextWindows",
    "chunk_text",
]
