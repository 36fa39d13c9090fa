"""
LLM configuration settings.

Google Gemini embedding and chat model settings, plus upstream call limits.

Dependencies: pydantic, pydantic_settings
System role: External model service configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Gemini model configuration for embeddings and completions."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        description="Google API key (falls back to GOOGLE_API_KEY when unset)",
    )
    embedding_model: str = Field(
        default="models/gemini-embedding-001",
        description="Google Gemini embedding model ID",
    )
    embedding_dimension: int = Field(
        default=768,
        gt=0,
        description="Embedding vector dimension requested from the model",
    )
    chat_model: str = Field(
        default="gemini-2.0-flash",
        description="Google Gemini chat model ID",
    )
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout applied to every embedding and completion call",
    )
    embed_input_limit: int = Field(
        default=6000,
        gt=0,
        description="Input characters sent to the embedding model; longer text is truncated",
    )
    embedding_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum in-flight embedding calls per ingestion request",
    )
