"""
RAG pipeline orchestrator.

Ties ingestion (chunk -> embed -> index) and querying (retrieve ->
assemble prompt -> complete) together around an owned VectorIndex.

State machine:
    Idle -> Ingesting -> Indexed -> Querying -> Answered
    Ingesting/Querying -> Failed -> Indexed (or Idle when the index is empty)

Requests may overlap, so the reported state is derived from the
operations still in flight: any running ingestion keeps the pipeline
Ingesting, otherwise any running query keeps it Querying.

Failures never corrupt the index. Querying an empty index raises
EmptyIndexError.

Dependencies: docrag.core, docrag.boundary, docrag.configs
System role: Application orchestration layer
"""

import asyncio
import contextlib
import enum
import logging
import time
from collections import Counter
from collections.abc import Coroutine, Iterator, Sequence
from typing import Any, TypeVar

from docrag.boundary.llm.base import CompletionClient, EmbeddingClient
from docrag.boundary.vdb.vector_index import VectorIndex
from docrag.configs.retrieval import RetrievalSettings
from docrag.core.citation_builder import CitationBuilder
from docrag.core.document_processing.tasks.chunking_task import ChunkingTask, chunk_text
from docrag.core.document_processing.tasks.embedding_task import EmbeddingTask
from docrag.core.exceptions import (
    DocRAGException,
    EmptyIndexError,
    MalformedCompletionOutput,
    UpstreamServiceError,
    ValidationError,
    VectorIndexError,
)
from docrag.core.normalizer import normalize
from docrag.core.prompt_builder import (
    build_analysis_prompt,
    build_chunk_summary_prompt,
    build_merge_prompt,
    build_prompt,
    build_report_prompt,
)
from docrag.core.retriever import Retriever
from docrag.core.structured_output import parse_structured_analysis
from docrag.models.chat import AnalyzeResponse, AskResponse, DocumentSummary, SummarizeResponse
from docrag.models.chunk import ScoredChunk
from docrag.models.document import (
    ClearResponse,
    Document,
    DocumentIngestionReport,
    IndexStatsResponse,
    IngestResponse,
)
from docrag.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_MATCH_ANSWER = (
    "No indexed content could be used as evidence for this query, so there is no answer "
    "to give. Try a broader tag filter or a larger context budget."
)


async def _gather_cancelling(*coros: Coroutine[Any, Any, T]) -> list[T]:
    """
    Run coroutines concurrently, cancelling the rest as soon as one fails.

    The first failure is re-raised unwrapped so callers see the same
    exception types asyncio.gather would have produced.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None
    return [task.result() for task in tasks]


class PipelineState(str, enum.Enum):
    """Lifecycle states of the pipeline."""

    IDLE = "idle"
    INGESTING = "ingesting"
    INDEXED = "indexed"
    QUERYING = "querying"
    ANSWERED = "answered"
    FAILED = "failed"


class RAGPipeline:
    """
    Retrieval-augmented question answering over an in-memory index.

    Owns its VectorIndex; independent pipelines never share state.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        completer: CompletionClient,
        settings: RetrievalSettings | None = None,
        index: VectorIndex | None = None,
        embedding_concurrency: int = 4,
        role_instruction: str | None = None,
    ) -> None:
        """
        Initialize pipeline with collaborators.

        Args:
            embedder: Embedding service client
            completer: Completion service client
            settings: Retrieval settings (defaults loaded from environment)
            index: Vector index to own (new empty index if None)
            embedding_concurrency: Max in-flight embedding calls per ingestion
            role_instruction: Persona line prepended to answer prompts
        """
        self._settings = settings or RetrievalSettings()
        self._index = index if index is not None else VectorIndex()
        self._completer = completer
        self._role_instruction = role_instruction

        self._chunking_task = ChunkingTask(
            chunk_size=self._settings.chunk_size,
            chunk_overlap=self._settings.chunk_overlap,
        )
        self._embedding_task = EmbeddingTask(embedder, concurrency=embedding_concurrency)
        self._retriever = Retriever(self._index, embedder, self._chunking_task)
        self._citations = CitationBuilder(preview_chars=self._settings.preview_chars)
        self._state = PipelineState.INDEXED if len(self._index) else PipelineState.IDLE
        self._in_flight: Counter[PipelineState] = Counter()

    @property
    def index(self) -> VectorIndex:
        return self._index

    @property
    def state(self) -> PipelineState:
        return self._state

    def _transition(self, state: PipelineState) -> None:
        if state is not self._state:
            logger.info(f"{__name__}:_transition - {self._state.value} -> {state.value}")
        self._state = state

    def _settle(self) -> None:
        """Return to the state implied by whatever is still running."""
        if self._in_flight[PipelineState.INGESTING]:
            self._transition(PipelineState.INGESTING)
        elif self._in_flight[PipelineState.QUERYING]:
            self._transition(PipelineState.QUERYING)
        else:
            self._transition(PipelineState.INDEXED if len(self._index) else PipelineState.IDLE)

    @contextlib.contextmanager
    def _operation(
        self,
        state: PipelineState,
        failure_types: tuple[type[BaseException], ...] = (UpstreamServiceError,),
    ) -> Iterator[None]:
        """
        Track one running ingestion or query.

        Enters `state`, records FAILED when one of `failure_types`
        escapes, and settles once the operation is no longer counted.
        """
        self._in_flight[state] += 1
        self._transition(state)
        try:
            yield
        except failure_types:
            self._transition(PipelineState.FAILED)
            raise
        finally:
            self._in_flight[state] -= 1
            self._settle()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(
        self,
        documents: Sequence[Document],
        failures: Sequence[DocumentIngestionReport] = (),
    ) -> IngestResponse:
        """
        Chunk, embed, and index documents.

        Documents are processed concurrently. Chunks of one document are
        appended in position order. Embedding failures skip only the
        affected chunk; empty documents contribute nothing.

        Args:
            documents: Documents to ingest
            failures: Reports for documents that already failed upstream
                (e.g. extraction), merged into the response

        Returns:
            IngestResponse: Counts and per-document reports

        Raises:
            ValidationError: No documents supplied
        """
        if not documents and not failures:
            raise ValidationError("No documents provided", field="documents")

        start_time = time.perf_counter()
        with self._operation(PipelineState.INGESTING, failure_types=(Exception,)):
            # One limiter per request bounds embedding calls across all documents
            limiter = self._embedding_task.limiter()
            reports = list(
                await asyncio.gather(*(self._ingest_document(doc, limiter) for doc in documents))
            )

            reports.extend(failures)
            added = sum(report.chunks_added for report in reports)
            response = IngestResponse(
                added=added,
                total_indexed=len(self._index),
                failed_documents=sum(1 for report in reports if report.status == "failed"),
                failed_chunks=sum(report.chunks_failed for report in reports),
                documents=reports,
            )
            if response.failed_documents or response.failed_chunks:
                self._transition(PipelineState.FAILED)

        logger.info(
            f"{__name__}:ingest - Added {added} chunks from {len(documents)} documents",
            extra={
                "total_indexed": response.total_indexed,
                "failed_documents": response.failed_documents,
                "failed_chunks": response.failed_chunks,
                "processing_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return response

    async def _ingest_document(
        self,
        document: Document,
        limiter: asyncio.Semaphore,
    ) -> DocumentIngestionReport:
        chunks = self._chunking_task.chunk(document)
        if not chunks:
            logger.info(f"{__name__}:_ingest_document - {document.name!r} has no text, skipped")
            return DocumentIngestionReport(name=document.name, status="empty")

        outcomes = await self._embedding_task.embed(chunks, limiter)

        added = 0
        failed = 0
        last_error: DocRAGException | None = None
        for outcome in outcomes:
            if not outcome.ok:
                failed += 1
                last_error = outcome.error
                continue
            try:
                self._index.add(outcome.chunk)
            except VectorIndexError as e:
                failed += 1
                last_error = e
                continue
            added += 1

        if failed == 0:
            status = "indexed"
        elif added:
            status = "partial"
        else:
            status = "failed"
        log_with_context(
            logger,
            logging.WARNING if failed else logging.INFO,
            f"{__name__}:_ingest_document - {document.name!r} {status}",
            document=document,
            chunks_added=added,
            chunks_failed=failed,
            last_error=last_error,
        )
        return DocumentIngestionReport(
            name=document.name,
            status=status,
            chunks_added=added,
            chunks_failed=failed,
            last_error=last_error,
            error_code=last_error.code if last_error else None,
            error=last_error.message if last_error else None,
        )

    def clear(self) -> ClearResponse:
        """Empty the index. Idempotent."""
        self._index.clear()
        self._settle()
        return ClearResponse(total_indexed=len(self._index))

    def stats(self) -> IndexStatsResponse:
        """Index size and per-document chunk counts."""
        return IndexStatsResponse(
            total_indexed=len(self._index),
            documents=self._index.document_counts(),
            state=self._state.value,
        )

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _require_query(self, query: str | None) -> str:
        query = normalize(query)
        if not query:
            raise ValidationError("Query must not be empty", field="query")
        return query

    def _require_index(self) -> None:
        if len(self._index) == 0:
            raise EmptyIndexError()

    async def _retrieve(
        self,
        query: str,
        k: int | None,
        tag_filters: dict[str, str] | None,
    ) -> list[ScoredChunk]:
        return await self._retriever.retrieve(
            query,
            k=k or self._settings.top_k,
            max_chars=self._settings.max_context_chars,
            max_chunks=self._settings.max_chunks,
            tag_filters=tag_filters,
        )

    async def ask(
        self,
        query: str | None,
        k: int | None = None,
        tag_filters: dict[str, str] | None = None,
    ) -> AskResponse:
        """
        Answer a question from the index.

        Args:
            query: User question
            k: Number of chunks to retrieve (settings default if None)
            tag_filters: Optional case-insensitive tag substring filters

        Returns:
            AskResponse: Answer with ranked sources

        Raises:
            ValidationError: Empty query
            EmptyIndexError: Nothing has been indexed
            EmbeddingServiceError: Query embedding failed
            CompletionServiceError: Completion failed
        """
        query = self._require_query(query)
        self._require_index()
        total_indexed = len(self._index)
        with self._operation(PipelineState.QUERYING):
            try:
                selected = await self._retrieve(query, k, tag_filters)
                if not selected:
                    # No chunk survived the tag filters and the context budget
                    answer = NO_MATCH_ANSWER
                else:
                    answer = await self._completer.complete(
                        build_prompt(query, selected, self._role_instruction)
                    )
            except UpstreamServiceError as e:
                log_exception_with_context(
                    logger, f"{__name__}:ask - Query failed", e, query=query, tag_filters=tag_filters
                )
                raise
            self._transition(PipelineState.ANSWERED)

        return AskResponse(
            answer=answer,
            sources=self._citations.build_sources(selected),
            used_count=len(selected),
            total_indexed=total_indexed,
        )

    async def ask_documents(
        self,
        query: str | None,
        documents: Sequence[Document],
    ) -> AskResponse:
        """
        Answer a question over ad-hoc documents using lexical scoring.

        The index is not read or modified.

        Args:
            query: User question
            documents: Documents supplied with the request

        Returns:
            AskResponse: Answer with ranked sources (total_indexed is the index size)

        Raises:
            ValidationError: Empty query or no documents with text
            CompletionServiceError: Completion failed
        """
        query = self._require_query(query)
        if not any(normalize(document.text) for document in documents):
            raise ValidationError("No documents with text provided", field="documents")

        selected = self._retriever.retrieve_lexical(
            query,
            documents,
            max_chars=self._settings.max_context_chars,
            max_chunks=self._settings.max_chunks,
        )
        answer = await self._completer.complete(build_prompt(query, selected, self._role_instruction))
        return AskResponse(
            answer=answer,
            sources=self._citations.build_sources(selected),
            used_count=len(selected),
            total_indexed=len(self._index),
        )

    async def analyze(
        self,
        query: str | None,
        k: int | None = None,
        tag_filters: dict[str, str] | None = None,
    ) -> AnalyzeResponse:
        """
        Produce a structured JSON analysis from retrieved context.

        Unparseable completion output is returned as a fallback report
        wrapping the raw text, flagged with fallback=True.

        Args:
            query: User query
            k: Number of chunks to retrieve
            tag_filters: Optional tag filters

        Returns:
            AnalyzeResponse: Structured analysis with sources

        Raises:
            ValidationError: Empty query
            EmptyIndexError: Nothing has been indexed
            EmbeddingServiceError: Query embedding failed
            CompletionServiceError: Completion failed
        """
        query = self._require_query(query)
        self._require_index()
        with self._operation(PipelineState.QUERYING):
            selected = await self._retrieve(query, k, tag_filters)
            raw = await self._completer.complete(
                build_analysis_prompt(query, selected, self._role_instruction)
            )

            fallback = False
            try:
                analysis = parse_structured_analysis(raw)
            except MalformedCompletionOutput as e:
                logger.warning(f"{__name__}:analyze - {e.message}; returning raw fallback")
                analysis = e.fallback
                fallback = True
            self._transition(PipelineState.ANSWERED)

        return AnalyzeResponse(
            analysis=analysis,
            fallback=fallback,
            sources=self._citations.build_sources(selected),
            used_count=len(selected),
        )

    async def summarize(
        self,
        query: str | None,
        documents: Sequence[Document],
    ) -> SummarizeResponse:
        """
        Map-reduce summarization of ad-hoc documents.

        Each document is split into summary windows, every window is
        summarized against the query, the partial summaries are merged
        per document, and the per-document summaries are combined into
        one report. At most `summary_concurrency` completions run at once
        across the whole request. The first completion failure cancels
        the outstanding ones and fails the request.

        Args:
            query: User query
            documents: Documents to summarize

        Returns:
            SummarizeResponse: Final report and per-document summaries

        Raises:
            ValidationError: Empty query or no documents with text
            CompletionServiceError: Any completion failed
        """
        query = self._require_query(query)
        with_text = [document for document in documents if normalize(document.text)]
        if not with_text:
            raise ValidationError("No documents with text provided", field="documents")

        limiter = asyncio.Semaphore(self._settings.summary_concurrency)
        details = await _gather_cancelling(
            *(self._summarize_document(query, doc, limiter) for doc in with_text)
        )
        result = await self._completer.complete(
            build_report_prompt(query, [f"File: {detail.name}\n{detail.summary}" for detail in details])
        )
        return SummarizeResponse(result=result, details=details)

    async def _complete_limited(self, prompt: str, limiter: asyncio.Semaphore) -> str:
        async with limiter:
            return await self._completer.complete(prompt)

    async def _summarize_document(
        self,
        query: str,
        document: Document,
        limiter: asyncio.Semaphore,
    ) -> DocumentSummary:
        windows = list(
            chunk_text(
                normalize(document.text),
                self._settings.summary_chunk_size,
                self._settings.summary_chunk_overlap,
            )
        )
        partials = await _gather_cancelling(
            *(
                self._complete_limited(
                    build_chunk_summary_prompt(
                        query, document.name, document.tags, index, len(windows), window
                    ),
                    limiter,
                )
                for index, window in enumerate(windows, start=1)
            )
        )
        if len(partials) == 1:
            merged = partials[0]
        else:
            merged = await self._complete_limited(
                build_merge_prompt(query, document.name, partials), limiter
            )
        return DocumentSummary(name=document.name, summary=merged, chunk_count=len(windows))

    def shutdown(self) -> None:
        """Release index memory at application shutdown."""
        self._index.clear()
        self._transition(PipelineState.IDLE)
