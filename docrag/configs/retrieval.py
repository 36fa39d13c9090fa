"""
Retrieval configuration settings.

Chunking policy, context budget, and ranking limits for the retrieval core.

Dependencies: pydantic, pydantic_settings
System role: Retrieval and chunking configuration
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrievalSettings(BaseSettings):
    """Chunking and context-budget configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRIEVAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    chunk_size: int = Field(default=1200, gt=0, description="Chunk window size in characters")
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Characters shared by consecutive chunks",
    )
    top_k: int = Field(default=8, ge=1, description="Default number of chunks retrieved per query")
    max_context_chars: int = Field(
        default=12000,
        gt=0,
        description="Character budget for the assembled context block",
    )
    max_chunks: int = Field(
        default=50,
        ge=1,
        description="Hard cap on chunks placed in a single prompt",
    )
    preview_chars: int = Field(
        default=200,
        ge=0,
        description="Length of the source preview returned with answers",
    )
    summary_chunk_size: int = Field(
        default=4000,
        gt=0,
        description="Window size used by map-reduce summarization",
    )
    summary_chunk_overlap: int = Field(
        default=0,
        ge=0,
        description="Window overlap used by map-reduce summarization",
    )
    summary_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum in-flight completion calls per summarize request",
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> "RetrievalSettings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.summary_chunk_overlap >= self.summary_chunk_size:
            raise ValueError("summary_chunk_overlap must be smaller than summary_chunk_size")
        return self
