"""
Chunk domain model.

Represents a contiguous slice of a document's normalized text, the
atomic unit of embedding and retrieval.

Dependencies: pydantic
System role: Document chunk data structure
"""

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """Document chunk model. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Index-assigned identifier (None until indexed)")
    source_document: str = Field(description="Name of the document this chunk came from")
    position: int = Field(ge=0, description="Zero-based sequence index within the document")
    text: str = Field(description="Literal text slice")
    tags: dict[str, str] = Field(default_factory=dict, description="Tags copied from the document")
    vector: tuple[float, ...] | None = Field(
        default=None,
        repr=False,
        description="Embedding vector",
    )


class ScoredChunk(BaseModel):
    """Chunk paired with its retrieval score for a single query."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    score: float
