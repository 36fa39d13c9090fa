"""
External model service boundary.

Provides embedding and chat-completion clients behind small protocols
so the retrieval core never depends on a vendor SDK.

Dependencies: langchain_google_genai
System role: Adapters for external LLM services
"""

from docrag.boundary.llm.base import CompletionClient, EmbeddingClient
from docrag.boundary.llm.gemini_chat import GeminiCompletionClient
from docrag.boundary.llm.gemini_embeddings import GeminiEmbeddingClient

__all__ = [
    "CompletionClient",
    "EmbeddingClient",
    "GeminiCompletionClient",
    "GeminiEmbeddingClient",
]
