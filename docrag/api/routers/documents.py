"""
Document API endpoints.

Routes:
- POST /documents - Ingest documents supplied as JSON text
- POST /documents/upload - Extract and ingest uploaded files
- DELETE /documents - Clear the index
- GET /documents/stats - Index size and per-document chunk counts

Dependencies: docrag.application, docrag.core.document_processing, docrag.models
System role: Document HTTP API
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from docrag.api.deps import get_extractor, get_pipeline
from docrag.api.error_handling import handle_rag_errors
from docrag.application.rag_pipeline import RAGPipeline
from docrag.core.document_processing.tasks.parsing_task import (
    DocumentExtractor,
    resolve_mime_type,
)
from docrag.core.exceptions import ExtractionError
from docrag.models.document import (
    ClearResponse,
    Document,
    DocumentIngestionReport,
    IndexStatsResponse,
    IngestRequest,
    IngestResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=IngestResponse)
@handle_rag_errors
async def ingest_documents(
    request: IngestRequest,
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """
    Chunk, embed, and index documents supplied as text.

    Args:
        request: Documents with name, text, and optional tags
        pipeline: Injected RAGPipeline

    Returns:
        IngestResponse: Chunks added and per-document reports

    Raises:
        HTTPException(400): No documents supplied
    """
    return await pipeline.ingest(request.documents)


@router.post("/upload", response_model=IngestResponse)
@handle_rag_errors
async def upload_documents(
    files: list[UploadFile] | None = File(default=None),
    system: str | None = Form(default=None),
    subsystem: str | None = Form(default=None),
    pipeline: RAGPipeline = Depends(get_pipeline),
    extractor: DocumentExtractor = Depends(get_extractor),
) -> IngestResponse:
    """
    Extract text from uploaded files and ingest it.

    Files that fail extraction are reported per document; the rest are
    still ingested.

    Args:
        files: Uploaded files (PDF, images, DOCX, spreadsheets, CSV, text)
        system: Optional system tag applied to every file
        subsystem: Optional subsystem tag applied to every file
        pipeline: Injected RAGPipeline
        extractor: Injected DocumentExtractor

    Returns:
        IngestResponse: Chunks added and per-document reports

    Raises:
        HTTPException(400): No files supplied
    """
    files = files or []
    base_tags = {key: value for key, value in (("system", system), ("subsystem", subsystem)) if value}

    documents: list[Document] = []
    failures: list[DocumentIngestionReport] = []
    for upload in files:
        name = upload.filename or "upload"
        mime_type = resolve_mime_type(name, upload.content_type)
        content = await upload.read()
        try:
            # OCR and spreadsheet parsing are blocking
            extracted = await run_in_threadpool(extractor.extract, content, mime_type, name)
        except ExtractionError as e:
            logger.warning(
                f"{__name__}:upload_documents - Extraction failed for {name!r}",
                extra={"mime_type": mime_type, "error": e.message},
            )
            failures.append(
                DocumentIngestionReport(name=name, status="failed", error_code=e.code, error=e.message)
            )
            continue
        documents.append(
            Document(
                name=name,
                text=extracted.text,
                mime_type=mime_type,
                tags={**base_tags, **extracted.tags},
            )
        )

    logger.info(
        f"{__name__}:upload_documents - Extracted {len(documents)} of {len(files)} files",
        extra={"system": system, "subsystem": subsystem},
    )
    return await pipeline.ingest(documents, failures=failures)


@router.delete("", response_model=ClearResponse)
@handle_rag_errors
async def clear_documents(pipeline: RAGPipeline = Depends(get_pipeline)) -> ClearResponse:
    """Clear every indexed chunk. Safe to call repeatedly."""
    return pipeline.clear()


@router.get("/stats", response_model=IndexStatsResponse)
@handle_rag_errors
async def index_stats(pipeline: RAGPipeline = Depends(get_pipeline)) -> IndexStatsResponse:
    """Return index size and chunk counts per document."""
    return pipeline.stats()
