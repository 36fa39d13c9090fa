"""
Citation domain model.

Represents a cited source returned alongside a generated answer.

Dependencies: pydantic
System role: Citation data structure
"""

from pydantic import BaseModel, Field


class Source(BaseModel):
    """Source attribution for one retrieved chunk."""

    rank: int = Field(description="Citation number used in the prompt ([[rank]])")
    document_name: str = Field(description="Source document name")
    position: int = Field(description="Chunk position within the source document")
    score: float = Field(description="Retrieval score")
    preview: str = Field(description="Leading excerpt of the chunk text")
