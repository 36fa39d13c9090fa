"""
Structured analysis model.

Typed shape of the JSON report requested from the completion service.

Dependencies: pydantic
System role: Structured completion output contract
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StructuredAnalysis(BaseModel):
    """Engineering analysis report produced from retrieved context."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    technical_summary: str = Field(
        default="",
        validation_alias=AliasChoices("technical_summary", "technicalSummary"),
    )
    layman_summary: str = Field(
        default="",
        validation_alias=AliasChoices("layman_summary", "laymanSummary"),
    )
    wire_details: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("wire_details", "wireDetails"),
    )
    components: list[Any] = Field(default_factory=list)
    architecture_suggestion: str = Field(
        default="",
        validation_alias=AliasChoices("architecture_suggestion", "architectureSuggestion"),
    )
    raw: str | None = Field(default=None, description="Unparsed completion text (fallback only)")

    @classmethod
    def from_raw(cls, raw: str) -> "StructuredAnalysis":
        """Wrap unparseable completion text without dropping it."""
        return cls(raw=raw)
