"""
Test suite for the RAG pipeline orchestrator.

Runs the full ingest -> retrieve -> prompt -> complete path against
deterministic fakes for the embedding and completion services.

System role: Verification of orchestration, state transitions, and failure isolation
"""

import asyncio
import json

import pytest

from docrag.application.rag_pipeline import NO_MATCH_ANSWER, PipelineState, RAGPipeline
from docrag.configs.retrieval import RetrievalSettings
from docrag.core.exceptions import (
    CompletionServiceError,
    EmbeddingServiceError,
    EmptyIndexError,
    ValidationError,
)
from docrag.models.document import Document, DocumentIngestionReport


def _small_settings(**overrides) -> RetrievalSettings:
    values = dict(
        chunk_size=100,
        chunk_overlap=0,
        top_k=8,
        max_context_chars=12000,
        max_chunks=50,
        preview_chars=200,
        summary_chunk_size=4000,
        summary_chunk_overlap=0,
    )
    values.update(overrides)
    return RetrievalSettings(**values)


class _StallingCompleter:
    """Fails the first summary window and stalls every other completion until cancelled."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.stalled = 0
        self.cancelled = 0

    async def complete(self, prompt: str) -> str:
        await asyncio.sleep(0)
        if "Content chunk 1/" in prompt:
            raise self.error
        self.stalled += 1
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return "summary"


class _GatedCompleter:
    """Holds completions whose prompt mentions "slow" until the gate opens."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def complete(self, prompt: str) -> str:
        if "slow" in prompt:
            self.waiting.set()
            await self.gate.wait()
        return "answer"


class TestEndToEndScenarios:
    """Test suite for the reference question-answering scenarios."""

    @pytest.mark.asyncio
    async def test_single_short_document_should_be_cited(self, pipeline, relay_document) -> None:
        # Arrange
        report = await pipeline.ingest([relay_document])

        # Act
        response = await pipeline.ask("What voltage does relay X1 use?")

        # Assert
        assert report.added == 1
        assert response.sources[0].document_name == "spec.txt"
        assert response.sources[0].position == 0
        assert "[[1]] File: spec.txt (pos 0)" in response.answer
        assert "24VDC" in response.answer
        assert response.used_count == 1
        assert response.total_indexed == 1

    @pytest.mark.asyncio
    async def test_empty_document_should_contribute_nothing(self, pipeline, filler_text) -> None:
        # Act
        report = await pipeline.ingest(
            [Document(name="filler.txt", text=filler_text), Document(name="blank.txt", text="")]
        )

        # Assert
        assert report.added == 3
        assert report.total_indexed == 3
        assert report.failed_documents == 0
        assert {d.name: d.status for d in report.documents} == {
            "filler.txt": "indexed",
            "blank.txt": "empty",
        }

    @pytest.mark.asyncio
    async def test_query_after_clear_should_raise_empty_index(self, pipeline, relay_document) -> None:
        # Arrange
        await pipeline.ingest([relay_document])
        pipeline.clear()

        # Act / Assert
        with pytest.raises(EmptyIndexError):
            await pipeline.ask("What voltage does relay X1 use?")
        assert pipeline.state is PipelineState.IDLE

    @pytest.mark.asyncio
    async def test_unmatched_tag_filter_should_return_no_sources(self, pipeline, completer) -> None:
        # Arrange
        await pipeline.ingest(
            [Document(name="hvac.txt", text="Compressor C2 runs on 400VAC.", tags={"system": "HVAC"})]
        )

        # Act
        response = await pipeline.ask("compressor voltage", tag_filters={"system": "Brakes"})

        # Assert
        assert response.used_count == 0
        assert response.sources == []
        assert response.answer == NO_MATCH_ANSWER
        assert completer.prompts == []

    @pytest.mark.asyncio
    async def test_repeated_query_should_cite_same_sources(self, pipeline, filler_text, relay_document) -> None:
        await pipeline.ingest([relay_document, Document(name="filler.txt", text=filler_text)])

        first = await pipeline.ask("relay X1 wiring panel")
        second = await pipeline.ask("relay X1 wiring panel")

        assert [(s.document_name, s.position) for s in first.sources] == [
            (s.document_name, s.position) for s in second.sources
        ]


class TestIngestion:
    """Test suite for RAGPipeline.ingest."""

    @pytest.mark.asyncio
    async def test_ingest_should_reject_empty_request(self, pipeline) -> None:
        with pytest.raises(ValidationError):
            await pipeline.ingest([])

    @pytest.mark.asyncio
    async def test_embedding_failure_should_skip_only_that_chunk(self, make_embedder, completer) -> None:
        # Arrange
        pipeline = RAGPipeline(make_embedder(fail_on="poison"), completer, settings=_small_settings())
        document = Document(name="mixed.txt", text="a" * 100 + "b" * 90 + "poison")

        # Act
        report = await pipeline.ingest([document])

        # Assert
        doc_report = report.documents[0]
        assert doc_report.status == "partial"
        assert (doc_report.chunks_added, doc_report.chunks_failed) == (1, 1)
        assert doc_report.error_code == EmbeddingServiceError.code
        assert report.failed_chunks == 1
        assert [c.position for c in pipeline.index.chunks()] == [0]
        assert pipeline.state is PipelineState.INDEXED

    @pytest.mark.asyncio
    async def test_fully_failed_document_should_not_block_others(self, make_embedder, completer) -> None:
        pipeline = RAGPipeline(make_embedder(fail_on="poison"), completer, settings=_small_settings())

        report = await pipeline.ingest(
            [Document(name="bad.txt", text="poison"), Document(name="good.txt", text="clean text")]
        )

        assert report.failed_documents == 1
        assert report.added == 1
        assert pipeline.index.document_counts() == {"good.txt": 1}

    @pytest.mark.asyncio
    async def test_reingestion_should_append(self, pipeline, relay_document) -> None:
        await pipeline.ingest([relay_document])
        report = await pipeline.ingest([relay_document])

        assert report.total_indexed == 2
        assert pipeline.stats().documents == {"spec.txt": 2}

    @pytest.mark.asyncio
    async def test_concurrent_ingestion_should_keep_chunk_order(self, embedder, completer) -> None:
        # Arrange
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings(chunk_size=50, chunk_overlap=10))
        documents = [Document(name=f"doc{i}.txt", text=f"document {i} " * 60) for i in range(4)]

        # Act
        reports = await asyncio.gather(*(pipeline.ingest([doc]) for doc in documents))

        # Assert
        assert len(pipeline.index) == sum(r.added for r in reports)
        for document in documents:
            positions = [c.position for c in pipeline.index.chunks() if c.source_document == document.name]
            assert positions == sorted(positions)
            assert positions == list(range(len(positions)))

    @pytest.mark.asyncio
    async def test_ingest_should_merge_upstream_failures(self, pipeline, relay_document) -> None:
        failure = DocumentIngestionReport(name="broken.pdf", status="failed", error_code="EXTRACTION_ERROR")

        report = await pipeline.ingest([relay_document], failures=[failure])

        assert report.failed_documents == 1
        assert [d.name for d in report.documents] == ["spec.txt", "broken.pdf"]

    @pytest.mark.asyncio
    async def test_embedding_concurrency_should_hold_across_documents(
        self, embedder, completer, filler_text
    ) -> None:
        # Arrange
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings(), embedding_concurrency=2)
        documents = [Document(name=f"doc{i}.txt", text=filler_text) for i in range(10)]

        # Act
        report = await pipeline.ingest(documents)

        # Assert
        assert report.failed_chunks == 0
        assert report.added == len(embedder.calls)
        assert embedder.tracker.peak == 2


class TestQuerying:
    """Test suite for RAGPipeline.ask and ask_documents."""

    @pytest.mark.asyncio
    async def test_ask_should_reject_blank_query(self, pipeline, relay_document) -> None:
        await pipeline.ingest([relay_document])

        with pytest.raises(ValidationError):
            await pipeline.ask("  \n ")

    @pytest.mark.asyncio
    async def test_ask_should_raise_on_never_ingested_index(self, pipeline) -> None:
        with pytest.raises(EmptyIndexError):
            await pipeline.ask("anything")

    @pytest.mark.asyncio
    async def test_ask_should_limit_to_k(self, embedder, completer, filler_text) -> None:
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings())
        await pipeline.ingest([Document(name="filler.txt", text=filler_text)])

        response = await pipeline.ask("conveyor maintenance", k=2)

        assert response.used_count == 2
        assert [s.rank for s in response.sources] == [1, 2]

    @pytest.mark.asyncio
    async def test_ask_should_enforce_context_budget(self, embedder, completer, filler_text) -> None:
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings(max_context_chars=250))
        await pipeline.ingest([Document(name="filler.txt", text=filler_text)])

        response = await pipeline.ask("conveyor maintenance")

        assert response.used_count == 2

    @pytest.mark.asyncio
    async def test_completion_failure_should_leave_index_intact(
        self, embedder, make_completer, completion_failure, relay_document
    ) -> None:
        # Arrange
        pipeline = RAGPipeline(embedder, make_completer(error=completion_failure), settings=_small_settings())
        await pipeline.ingest([relay_document])

        # Act
        with pytest.raises(CompletionServiceError):
            await pipeline.ask("relay voltage")

        # Assert
        assert len(pipeline.index) == 1
        assert pipeline.state is PipelineState.INDEXED

    @pytest.mark.asyncio
    async def test_budget_smaller_than_top_chunk_should_return_no_evidence(
        self, embedder, completer, filler_text
    ) -> None:
        # Arrange
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings(max_context_chars=50))
        await pipeline.ingest([Document(name="filler.txt", text=filler_text)])

        # Act
        response = await pipeline.ask("conveyor maintenance")

        # Assert
        assert response.used_count == 0
        assert response.sources == []
        assert response.answer == NO_MATCH_ANSWER
        assert completer.prompts == []

    @pytest.mark.asyncio
    async def test_role_instruction_should_prefix_prompt(self, embedder, completer, relay_document) -> None:
        pipeline = RAGPipeline(embedder, completer, role_instruction="You are a rail signalling engineer.")
        await pipeline.ingest([relay_document])

        await pipeline.ask("relay voltage")

        assert completer.prompts[0].startswith("You are a rail signalling engineer.")

    @pytest.mark.asyncio
    async def test_ask_documents_should_not_touch_index(self, pipeline) -> None:
        # Act
        response = await pipeline.ask_documents(
            "relay X1 voltage",
            [
                Document(name="notes.txt", text="General site notes."),
                Document(name="relay.txt", text="Relay X1 operates at 24VDC."),
            ],
        )

        # Assert
        assert response.sources[0].document_name == "relay.txt"
        assert response.total_indexed == 0
        assert len(pipeline.index) == 0

    @pytest.mark.asyncio
    async def test_ask_documents_should_require_text(self, pipeline) -> None:
        with pytest.raises(ValidationError):
            await pipeline.ask_documents("question", [Document(name="blank.txt", text=" ")])


class TestAnalyze:
    """Test suite for RAGPipeline.analyze."""

    @pytest.mark.asyncio
    async def test_analyze_should_parse_json_report(self, embedder, make_completer, relay_document) -> None:
        # Arrange
        report = {"technicalSummary": "X1 switches 24VDC [[1]]", "components": ["X1"]}
        pipeline = RAGPipeline(embedder, make_completer(response=json.dumps(report)))
        await pipeline.ingest([relay_document])

        # Act
        response = await pipeline.analyze("Describe relay X1")

        # Assert
        assert response.fallback is False
        assert response.analysis.technical_summary == "X1 switches 24VDC [[1]]"
        assert response.analysis.components == ["X1"]
        assert response.used_count == 1

    @pytest.mark.asyncio
    async def test_analyze_should_fall_back_to_raw_text(self, embedder, make_completer, relay_document) -> None:
        pipeline = RAGPipeline(embedder, make_completer(response="Not JSON at all."))
        await pipeline.ingest([relay_document])

        response = await pipeline.analyze("Describe relay X1")

        assert response.fallback is True
        assert response.analysis.raw == "Not JSON at all."
        assert pipeline.state is PipelineState.INDEXED

    @pytest.mark.asyncio
    async def test_analyze_should_raise_on_empty_index(self, pipeline) -> None:
        with pytest.raises(EmptyIndexError):
            await pipeline.analyze("Describe relay X1")


class TestSummarize:
    """Test suite for RAGPipeline.summarize."""

    @pytest.mark.asyncio
    async def test_summarize_should_map_merge_and_reduce(self, make_completer, embedder) -> None:
        # Arrange
        completer = make_completer(response="summary")
        pipeline = RAGPipeline(embedder, completer)
        documents = [
            Document(name="short.txt", text="Relay X1 operates at 24VDC."),
            Document(name="long.txt", text="conveyor " * 1000),
        ]

        # Act
        response = await pipeline.summarize("What equipment is described?", documents)

        # Assert
        assert response.result == "summary"
        assert {d.name: d.chunk_count for d in response.details} == {"short.txt": 1, "long.txt": 3}
        # short: 1 map; long: 3 map + 1 merge; final report: 1
        assert len(completer.prompts) == 6
        assert "File: short.txt" in completer.prompts[-1]
        assert "File: long.txt" in completer.prompts[-1]

    @pytest.mark.asyncio
    async def test_summarize_should_skip_documents_without_text(self, pipeline) -> None:
        response = await pipeline.summarize(
            "q", [Document(name="blank.txt", text=""), Document(name="a.txt", text="content")]
        )

        assert [d.name for d in response.details] == ["a.txt"]

    @pytest.mark.asyncio
    async def test_summarize_should_fail_on_completion_error(
        self, embedder, make_completer, completion_failure
    ) -> None:
        pipeline = RAGPipeline(embedder, make_completer(error=completion_failure))

        with pytest.raises(CompletionServiceError):
            await pipeline.summarize("q", [Document(name="a.txt", text="content")])

    @pytest.mark.asyncio
    async def test_summarize_should_bound_in_flight_completions(self, embedder, make_completer) -> None:
        # Arrange
        completer = make_completer(response="summary")
        settings = _small_settings(summary_chunk_size=100, summary_concurrency=2)
        pipeline = RAGPipeline(embedder, completer, settings=settings)
        documents = [Document(name=f"doc{i}.txt", text="conveyor " * 500) for i in range(3)]

        # Act
        response = await pipeline.summarize("What equipment is described?", documents)

        # Assert
        assert all(detail.chunk_count > 1 for detail in response.details)
        assert completer.tracker.peak == 2

    @pytest.mark.asyncio
    async def test_summarize_should_cancel_outstanding_completions_on_failure(
        self, embedder, completion_failure
    ) -> None:
        # Arrange
        completer = _StallingCompleter(completion_failure)
        settings = _small_settings(summary_chunk_size=100, summary_concurrency=4)
        pipeline = RAGPipeline(embedder, completer, settings=settings)
        documents = [Document(name="long.txt", text="conveyor " * 500)]

        # Act
        with pytest.raises(CompletionServiceError):
            await asyncio.wait_for(pipeline.summarize("q", documents), timeout=2)

        # Assert
        assert completer.stalled >= 1
        assert completer.cancelled == completer.stalled


class TestPipelineState:
    """Test suite for lifecycle state transitions."""

    @pytest.mark.asyncio
    async def test_state_should_follow_lifecycle(self, pipeline, relay_document) -> None:
        assert pipeline.state is PipelineState.IDLE

        await pipeline.ingest([relay_document])
        assert pipeline.state is PipelineState.INDEXED

        await pipeline.ask("relay")
        assert pipeline.state is PipelineState.INDEXED

        pipeline.clear()
        assert pipeline.state is PipelineState.IDLE

    def test_clear_should_be_idempotent(self, pipeline) -> None:
        assert pipeline.clear().total_indexed == 0
        assert pipeline.clear().total_indexed == 0

    @pytest.mark.asyncio
    async def test_stats_should_report_counts(self, pipeline, relay_document, filler_text) -> None:
        await pipeline.ingest([relay_document, Document(name="filler.txt", text=filler_text)])

        stats = pipeline.stats()

        assert stats.total_indexed == 4
        assert stats.documents == {"spec.txt": 1, "filler.txt": 3}
        assert stats.state == "indexed"

    @pytest.mark.asyncio
    async def test_shutdown_should_release_index(self, pipeline, relay_document) -> None:
        await pipeline.ingest([relay_document])

        pipeline.shutdown()

        assert len(pipeline.index) == 0
        assert pipeline.state is PipelineState.IDLE

    @pytest.mark.asyncio
    async def test_state_should_stay_querying_while_other_queries_run(
        self, embedder, relay_document
    ) -> None:
        # Arrange
        completer = _GatedCompleter()
        pipeline = RAGPipeline(embedder, completer, settings=_small_settings())
        await pipeline.ingest([relay_document])
        slow = asyncio.create_task(pipeline.ask("slow relay question"))
        await asyncio.wait_for(completer.waiting.wait(), timeout=2)

        # Act
        await pipeline.ask("fast relay question")
        state_while_slow_runs = pipeline.state
        completer.gate.set()
        await slow

        # Assert
        assert state_while_slow_runs is PipelineState.QUERYING
        assert pipeline.state is PipelineState.INDEXED
