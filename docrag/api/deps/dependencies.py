"""
Dependency injection container.

Factory functions for FastAPI dependencies. One RAGPipeline (and so one
VectorIndex) is shared by every request of the process.

Dependencies: docrag.configs, docrag.application, docrag.boundary
System role: DI container for service injection
"""

import logging
from functools import lru_cache

from docrag.application.rag_pipeline import RAGPipeline
from docrag.boundary.llm import GeminiCompletionClient, GeminiEmbeddingClient
from docrag.configs import Settings, get_settings
from docrag.core.document_processing.tasks.parsing_task import DocumentExtractor

logger = logging.getLogger(__name__)


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self) -> None:
        self._pipeline: RAGPipeline | None = None
        self._extractor: DocumentExtractor | None = None

    @property
    def pipeline(self) -> RAGPipeline:
        """Get cached RAG pipeline backed by Gemini clients."""
        if self._pipeline is None:
            settings = get_settings()
            self._pipeline = RAGPipeline(
                embedder=GeminiEmbeddingClient(settings.llm),
                completer=GeminiCompletionClient(settings.llm),
                settings=settings.retrieval,
                embedding_concurrency=settings.llm.embedding_concurrency,
            )
            logger.info(f"{__name__}:pipeline - RAG pipeline initialized")
        return self._pipeline

    @property
    def extractor(self) -> DocumentExtractor:
        """Get cached document extractor."""
        if self._extractor is None:
            self._extractor = DocumentExtractor()
        return self._extractor

    def clear(self) -> None:
        """Shut down the pipeline and drop all cached instances."""
        if self._pipeline is not None:
            self._pipeline.shutdown()
        self._pipeline = None
        self._extractor = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_pipeline() -> RAGPipeline:
    """
    Get the shared RAG pipeline.

    Returns:
        RAGPipeline: Process-wide pipeline owning the vector index
    """
    return get_service_cache().pipeline


def get_extractor() -> DocumentExtractor:
    """
    Get the document extractor used for uploads.

    Returns:
        DocumentExtractor: Text extractor
    """
    return get_service_cache().extractor
