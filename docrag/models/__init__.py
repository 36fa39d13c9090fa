"""Pydantic domain models and API contracts."""

from docrag.models.analysis import StructuredAnalysis
from docrag.models.chat import (
    AnalyzeResponse,
    AskDocumentsRequest,
    AskRequest,
    AskResponse,
    DocumentSummary,
    SummarizeRequest,
    SummarizeResponse,
)
from docrag.models.chunk import Chunk, ScoredChunk
from docrag.models.citation import Source
from docrag.models.common import ErrorResponse
from docrag.models.document import (
    ClearResponse,
    Document,
    DocumentIngestionReport,
    IndexStatsResponse,
    IngestRequest,
    IngestResponse,
)

__all__ = [
    "AnalyzeResponse",
    "AskDocumentsRequest",
    "AskRequest",
    "AskResponse",
    "Chunk",
    "ClearResponse",
    "Document",
    "DocumentIngestionReport",
    "DocumentSummary",
    "ErrorResponse",
    "IndexStatsResponse",
    "IngestRequest",
    "IngestResponse",
    "ScoredChunk",
    "Source",
    "StructuredAnalysis",
    "SummarizeRequest",
    "SummarizeResponse",
]
