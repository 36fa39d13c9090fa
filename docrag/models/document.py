"""
Document domain models and schemas.

Ingestion input model plus request/response schemas for index operations.

Dependencies: pydantic
System role: Document API contracts
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Document(BaseModel):
    """A named unit of content submitted for ingestion."""

    name: str = Field(min_length=1, description="Document name (not required to be unique)")
    text: str = Field(default="", description="Raw extracted text")
    mime_type: str = Field(default="text/plain", description="Declared media type")
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Free-form tags such as system/subsystem used for scoped retrieval",
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("document name must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _stringify_tags(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items() if v is not None}
        return value


class IngestRequest(BaseModel):
    """Request schema for ingesting documents."""

    documents: list[Document] = Field(default_factory=list)


DocumentStatus = Literal["indexed", "partial", "empty", "failed"]


class DocumentIngestionReport(BaseModel):
    """Per-document ingestion outcome."""

    name: str
    status: DocumentStatus
    chunks_added: int = 0
    chunks_failed: int = 0
    error_code: str | None = None
    error: str | None = None


class IngestResponse(BaseModel):
    """Response schema for ingestion."""

    added: int = Field(description="Chunks added by this request")
    total_indexed: int = Field(description="Chunks in the index after this request")
    failed_documents: int = Field(default=0, description="Documents that contributed no chunks due to errors")
    failed_chunks: int = Field(default=0, description="Chunks skipped after embedding failures")
    documents: list[DocumentIngestionReport] = Field(default_factory=list)


class ClearResponse(BaseModel):
    """Response schema for clearing the index."""

    total_indexed: int = 0


class IndexStatsResponse(BaseModel):
    """Index statistics."""

    total_indexed: int
    documents: dict[str, int] = Field(description="Chunk count per document name")
    state: str = Field(description="Current pipeline state")
