"""Chat API endpoints.

Routes:
- POST /chat/ask - Answer a question from the index
- POST /chat/ask-documents - Answer a question over documents sent with the request
- POST /chat/analyze - Structured JSON analysis from indexed context
- POST /chat/summarize - Map-reduce summary of documents sent with the request

Dependencies: docrag.application.rag_pipeline, docrag.models.chat
System role: Question answering HTTP API
"""

import logging

from fastapi import APIRouter, Depends

from docrag.api.deps import get_pipeline
from docrag.api.error_handling import handle_rag_errors
from docrag.application.rag_pipeline import RAGPipeline
from docrag.models.chat import (
    AnalyzeResponse,
    AskDocumentsRequest,
    AskRequest,
    AskResponse,
    SummarizeRequest,
    SummarizeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/ask", response_model=AskResponse)
@handle_rag_errors
async def ask(
    request: AskRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> AskResponse:
    """Answer a question grounded in indexed chunks.

    Args:
        request: Query with optional k and tag filters
        pipeline: Injected RAGPipeline

    Returns:
        AskResponse: Answer with ranked sources

    Raises:
        HTTPException(400): Empty query or empty index
        HTTPException(502): Embedding or completion service failed
    """
    return await pipeline.ask(request.query, k=request.k, tag_filters=request.tag_filters)


@router.post("/ask-documents", response_model=AskResponse)
@handle_rag_errors
async def ask_documents(
    request: AskDocumentsRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> AskResponse:
    """Answer a question over ad-hoc documents using lexical ranking."""
    return await pipeline.ask_documents(request.query, request.documents)


@router.post("/analyze", response_model=AnalyzeResponse)
@handle_rag_errors
async def analyze(
    request: AskRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    """Produce a structured analysis; unparseable output is returned with fallback=True."""
    return await pipeline.analyze(request.query, k=request.k, tag_filters=request.tag_filters)


@router.post("/summarize", response_model=SummarizeResponse)
@handle_rag_errors
async def summarize(
    request: SummarizeRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> SummarizeResponse:
    """Summarize each document against the query, then combine into one report."""
    return await pipeline.summarize(request.query, request.documents)
