"""
Document processing module.

Extraction, chunking, and embedding tasks for the ingestion path.
"""

from docrag.core.document_processing.tasks import (
    ChunkingTask,
    DocumentExtractor,
    EmbeddingOutcome,
    EmbeddingTask,
    ExtractedText,
    chunk_text,
)

__all__ = [
    "ChunkingTask",
    "DocumentExtractor",
    "EmbeddingOutcome",
    "EmbeddingTask",
    "ExtractedText",
    "chunk_text",
]
