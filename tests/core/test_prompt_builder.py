"""
Test suite for prompt assembly.

System role: Verification of citation-annotated context and grounding rules
"""

from docrag.core.prompt_builder import (
    DEFAULT_ROLE_INSTRUCTION,
    GROUNDING_RULES,
    NO_CONTEXT,
    TABULAR_RULE,
    build_analysis_prompt,
    build_chunk_summary_prompt,
    build_merge_prompt,
    build_prompt,
    build_report_prompt,
    format_citation,
)
from docrag.models.chunk import Chunk, ScoredChunk


def _scored(name: str, position: int, text: str, **tags: str) -> ScoredChunk:
    return ScoredChunk(
        chunk=Chunk(source_document=name, position=position, text=text, tags=tags),
        score=0.5,
    )


class TestBuildPrompt:
    """Test suite for build_prompt."""

    def test_build_prompt_should_number_context_in_rank_order(self) -> None:
        # Arrange
        chunks = [
            _scored("spec.txt", 0, "The brake relay X1 operates at 24VDC."),
            _scored("panel.txt", 3, "Panel 3001 wiring diagram."),
        ]

        # Act
        prompt = build_prompt("What voltage does relay X1 use?", chunks)

        # Assert
        first = prompt.index("[[1]] File: spec.txt (pos 0)")
        second = prompt.index("[[2]] File: panel.txt (pos 3)")
        assert first < second
        assert "24VDC" in prompt
        assert prompt.rstrip().endswith("Answer with citations:")

    def test_build_prompt_should_always_include_grounding_rules(self) -> None:
        prompt = build_prompt("q", [_scored("a.txt", 0, "text")], role_instruction="You are a rail engineer.")

        assert prompt.startswith("You are a rail engineer.")
        assert GROUNDING_RULES in prompt

    def test_build_prompt_should_use_default_role_instruction(self) -> None:
        assert build_prompt("q", []).startswith(DEFAULT_ROLE_INSTRUCTION)

    def test_build_prompt_should_mark_empty_context(self) -> None:
        assert NO_CONTEXT in build_prompt("q", [])

    def test_build_prompt_should_add_tabular_rule_for_spreadsheet_sources(self) -> None:
        tabular = _scored("bom.xlsx", 0, "Part | Qty", format="tabular")

        prompt = build_prompt("List parts", [tabular])

        assert TABULAR_RULE in prompt
        assert "(tabular)" in prompt

    def test_build_prompt_should_omit_tabular_rule_for_text_sources(self) -> None:
        assert TABULAR_RULE not in build_prompt("q", [_scored("a.txt", 0, "text")])


class TestFormatCitation:
    """Test suite for format_citation."""

    def test_format_citation_should_include_sorted_tags(self) -> None:
        scored = _scored("a.txt", 2, "text", system="HVAC", area="North")

        assert format_citation(4, scored) == "[[4]] File: a.txt (pos 2) | area: North, system: HVAC"

    def test_format_citation_should_hide_format_tag(self) -> None:
        scored = _scored("bom.csv", 0, "text", format="tabular")

        assert format_citation(1, scored) == "[[1]] File: bom.csv (pos 0) (tabular)"


class TestAuxiliaryPrompts:
    """Test suite for analysis and summarization prompts."""

    def test_build_analysis_prompt_should_request_json_keys(self) -> None:
        prompt = build_analysis_prompt("Describe the relay", [_scored("a.txt", 0, "text")])

        assert '"technicalSummary"' in prompt
        assert '"architectureSuggestion"' in prompt
        assert "[[1]] File: a.txt (pos 0)" in prompt

    def test_build_chunk_summary_prompt_should_include_position_and_tags(self) -> None:
        prompt = build_chunk_summary_prompt("q", "a.txt", {"system": "HVAC"}, 2, 5, "chunk text")

        assert "Content chunk 2/5:" in prompt
        assert "System: HVAC" in prompt
        assert "chunk text" in prompt

    def test_merge_and_report_prompts_should_include_all_parts(self) -> None:
        merge = build_merge_prompt("q", "a.txt", ["part one", "part two"])
        report = build_report_prompt("q", ["File: a.txt\nsum a", "File: b.txt\nsum b"])

        assert "part one" in merge and "part two" in merge
        assert "sum a" in report and "sum b" in report
