"""
Application layer.

Exports the RAG pipeline orchestrator.
"""

from docrag.application.rag_pipeline import NO_MATCH_ANSWER, PipelineState, RAGPipeline

__all__ = ["NO_MATCH_ANSWER", "PipelineState", "RAGPipeline"]
