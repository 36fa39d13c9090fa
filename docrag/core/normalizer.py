"""
Text normalization.

Canonicalizes raw extracted text before chunking: strips C0/C1 control
characters, collapses whitespace runs to single spaces, trims the ends.

Dependencies: re (stdlib)
System role: First step of the ingestion path
"""

import re

# C0 (U+0000-U+001F), DEL, and C1 (U+0080-U+009F)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def _replace_control(match: re.Match) -> str:
    char = match.group()
    # Whitespace controls (tab, newline, NEL, ...) separate words
    return " " if char.isspace() else ""


def normalize(raw: str | None) -> str:
    """
    Normalize raw text into a canonical single-line string.

    Idempotent: normalize(normalize(x)) == normalize(x).

    Args:
        raw: Raw extracted text (None treated as empty)

    Returns:
        str: Normalized text, empty string for empty input
    """
    if not raw:
        return ""
    cleaned = _CONTROL_CHARS.sub(_replace_control, raw)
    return " ".join(cleaned.split())
