"""
Structured completion output parsing.

Parses the JSON analysis report returned by the completion service.
Models commonly wrap JSON in Markdown fences or surround it with prose,
so the outermost object is located before validation.

Dependencies: json (stdlib), pydantic
System role: Structured output validation
"""

import json
import re

from pydantic import ValidationError as PydanticValidationError

from docrag.core.exceptions import MalformedCompletionOutput
from docrag.models.analysis import StructuredAnalysis

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _candidate_json(raw: str) -> str:
    fenced = _FENCE.search(raw)
    if fenced:
        return fenced.group(1).strip()
    start, end = raw.find("{"), raw.rfind("}")
    if start != -1 and end > start:
        return raw[start : end + 1]
    return raw.strip()


def parse_structured_analysis(raw: str) -> StructuredAnalysis:
    """
    Parse completion text into a StructuredAnalysis.

    Args:
        raw: Completion text

    Returns:
        StructuredAnalysis: Parsed report

    Raises:
        MalformedCompletionOutput: Text is not a JSON object of the expected shape;
            the exception's fallback wraps the raw text
    """
    try:
        payload = json.loads(_candidate_json(raw))
    except json.JSONDecodeError as e:
        raise MalformedCompletionOutput(
            f"Completion output is not valid JSON: {e.msg}",
            raw=raw,
            fallback=StructuredAnalysis.from_raw(raw),
        ) from e

    if not isinstance(payload, dict):
        raise MalformedCompletionOutput(
            f"Completion output is a JSON {type(payload).__name__}, expected an object",
            raw=raw,
            fallback=StructuredAnalysis.from_raw(raw),
        )

    try:
        return StructuredAnalysis.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedCompletionOutput(
            "Completion output does not match the analysis schema",
            raw=raw,
            fallback=StructuredAnalysis.from_raw(raw),
            details={"errors": e.error_count()},
        ) from e
