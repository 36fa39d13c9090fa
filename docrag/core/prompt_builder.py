"""
Prompt templates and citation-annotated context assembly.

Every answer prompt carries the grounding rules: answer only from the
supplied context, cite with [[n]] markers, use tables for tabular
answers, and admit missing evidence. A caller-supplied role instruction
is prepended to those rules and can never replace them.

Dependencies: langchain_core.prompts
System role: Prompt assembly for RAG completions
"""

from collections.abc import Sequence

from langchain_core.prompts import PromptTemplate

from docrag.models.chunk import ScoredChunk

DEFAULT_ROLE_INSTRUCTION = (
    "You are an expert engineering assistant answering questions about technical documentation."
)

GROUNDING_RULES = """## Rules
1. Answer ONLY from the numbered context below. Do not use outside knowledge.
2. Cite every supported claim with the bracketed marker of its source, e.g. [[1]] or [[2]][[3]], placed directly after the claim.
3. When the question asks for a table, comparison, matrix, or list of specifications, answer with a Markdown table instead of prose.
4. If the context does not contain enough evidence to answer, say so explicitly (for example "The provided documents do not contain this information.") instead of guessing."""

TABULAR_RULE = (
    "5. Sources marked (tabular) were extracted from spreadsheets; present answers drawn "
    "from them as a Markdown table."
)

NO_CONTEXT = "(no context was retrieved)"

ANSWER_PROMPT = PromptTemplate.from_template(
    """{role_instruction}

{rules}

## Context
{context}

## Question
{question}

Answer with citations:"""
)

ANALYSIS_PROMPT = PromptTemplate.from_template(
    """{role_instruction}

{rules}

Analyze the context to answer the query. Provide:
1. A technical/engineering summary
2. A layman's summary
3. Extracted wire details, components, BOM entries, and specifications
4. If relevant, the system architecture and a suggested diagram structure

## Context
{context}

## Query
{question}

Respond with a single JSON object and nothing else, using exactly these keys:
{{"technicalSummary": "", "laymanSummary": "", "wireDetails": [], "components": [], "architectureSuggestion": ""}}
Keep [[n]] citation markers inside the string values."""
)

CHUNK_SUMMARY_PROMPT = PromptTemplate.from_template(
    """User query: "{question}"

File: {name}
{tag_lines}
Content chunk {index}/{total}:
{text}

Answer the query based ONLY on this chunk. If the chunk is irrelevant, say so in one sentence."""
)

MERGE_PROMPT = PromptTemplate.from_template(
    """User query: "{question}"

Combine these partial summaries of the file "{name}" into one detailed, structured answer. Drop statements that say a chunk was irrelevant.

{summaries}"""
)

REPORT_PROMPT = PromptTemplate.from_template(
    """User query: "{question}"

Combine and refine the following file-level summaries into one comprehensive report. Name the file each finding comes from. If no file addresses the query, say so explicitly.

{summaries}"""
)


def _is_tabular(scored: ScoredChunk) -> bool:
    return scored.chunk.tags.get("format", "").lower() == "tabular"


def format_citation(rank: int, scored: ScoredChunk) -> str:
    """Render the citation header line for one context entry."""
    chunk = scored.chunk
    header = f"[[{rank}]] File: {chunk.source_document} (pos {chunk.position})"
    tag_text = ", ".join(f"{key}: {value}" for key, value in sorted(chunk.tags.items()) if key != "format")
    if tag_text:
        header += f" | {tag_text}"
    if _is_tabular(scored):
        header += " (tabular)"
    return header


def format_context(scored_chunks: Sequence[ScoredChunk]) -> str:
    """
    Render retrieved chunks as a numbered, citation-annotated block.

    Entries keep rank order; entry n is cited as [[n]].

    Args:
        scored_chunks: Retrieved chunks, best first

    Returns:
        str: Context block
    """
    if not scored_chunks:
        return NO_CONTEXT
    return "\n\n".join(
        f"{format_citation(rank, scored)}\n{scored.chunk.text}"
        for rank, scored in enumerate(scored_chunks, start=1)
    )


def _rules_for(scored_chunks: Sequence[ScoredChunk]) -> str:
    if any(_is_tabular(scored) for scored in scored_chunks):
        return f"{GROUNDING_RULES}\n{TABULAR_RULE}"
    return GROUNDING_RULES


def build_prompt(
    query: str,
    scored_chunks: Sequence[ScoredChunk],
    role_instruction: str | None = None,
) -> str:
    """
    Assemble the answer prompt.

    Args:
        query: User question
        scored_chunks: Retrieved chunks in rank order
        role_instruction: Optional persona line placed before the rules

    Returns:
        str: Complete prompt text
    """
    return ANSWER_PROMPT.format(
        role_instruction=(role_instruction or DEFAULT_ROLE_INSTRUCTION).strip(),
        rules=_rules_for(scored_chunks),
        context=format_context(scored_chunks),
        question=query,
    )


def build_analysis_prompt(
    query: str,
    scored_chunks: Sequence[ScoredChunk],
    role_instruction: str | None = None,
) -> str:
    """Assemble the structured JSON analysis prompt."""
    return ANALYSIS_PROMPT.format(
        role_instruction=(role_instruction or DEFAULT_ROLE_INSTRUCTION).strip(),
        rules=_rules_for(scored_chunks),
        context=format_context(scored_chunks),
        question=query,
    )


def build_chunk_summary_prompt(
    query: str,
    name: str,
    tags: dict[str, str],
    index: int,
    total: int,
    text: str,
) -> str:
    """Prompt for the map step of summarization (one chunk of one file)."""
    tag_lines = "\n".join(f"{key.capitalize()}: {value}" for key, value in sorted(tags.items()))
    return CHUNK_SUMMARY_PROMPT.format(
        question=query,
        name=name,
        tag_lines=tag_lines,
        index=index,
        total=total,
        text=text,
    )


def build_merge_prompt(query: str, name: str, partial_summaries: Sequence[str]) -> str:
    """Prompt that merges per-chunk summaries of one file."""
    return MERGE_PROMPT.format(question=query, name=name, summaries="\n\n".join(partial_summaries))


def build_report_prompt(query: str, file_summaries: Sequence[str]) -> str:
    """Prompt that combines per-file summaries into the final report."""
    return REPORT_PROMPT.format(question=query, summaries="\n\n".join(file_summaries))
