"""
Chat domain models and schemas.

Request/response schemas for question answering, analysis, and summarization.

Dependencies: pydantic
System role: Chat API contracts
"""

from pydantic import BaseModel, Field

from docrag.models.analysis import StructuredAnalysis
from docrag.models.citation import Source
from docrag.models.document import Document


class AskRequest(BaseModel):
    """Request schema for questions against the index."""

    query: str | None = Field(default=None, description="User question")
    k: int | None = Field(default=None, ge=1, le=100, description="Chunks to retrieve")
    tag_filters: dict[str, str] | None = Field(
        default=None,
        description="Case-insensitive substring filters on chunk tags",
    )


class AskDocumentsRequest(BaseModel):
    """Request schema for questions over ad-hoc documents."""

    query: str | None = None
    documents: list[Document] = Field(default_factory=list)


class AskResponse(BaseModel):
    """Response schema for answered questions."""

    answer: str
    sources: list[Source]
    used_count: int = Field(description="Chunks placed in the prompt")
    total_indexed: int = Field(description="Chunks in the index at query time")


class AnalyzeResponse(BaseModel):
    """Response schema for structured analysis."""

    analysis: StructuredAnalysis
    fallback: bool = Field(description="True when the completion could not be parsed")
    sources: list[Source]
    used_count: int


class SummarizeRequest(BaseModel):
    """Request schema for map-reduce summarization."""

    query: str | None = None
    documents: list[Document] = Field(default_factory=list)


class DocumentSummary(BaseModel):
    """Merged summary of one document."""

    name: str
    summary: str
    chunk_count: int


class SummarizeResponse(BaseModel):
    """Response schema for summarization."""

    result: str
    details: list[DocumentSummary]
