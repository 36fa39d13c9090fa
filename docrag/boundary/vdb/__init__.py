"""
Vector database boundary layer.

Provides the in-memory vector index used for similarity retrieval.

Dependencies: numpy
System role: Vector store for RAG retrieval
"""

from docrag.boundary.vdb.vector_index import VectorIndex, cosine_similarity
from docrag.boundary.vdb.vector_schemas import TagFilter

__all__ = ["TagFilter", "VectorIndex", "cosine_similarity"]
