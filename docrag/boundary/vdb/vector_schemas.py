"""
Vector index schemas.

Tag filter predicate used to scope similarity search.

Dependencies: pydantic
System role: Type definitions for vector operations
"""

from pydantic import BaseModel, Field


class TagFilter(BaseModel):
    """
    Conjunctive, case-insensitive substring filter over chunk tags.

    A chunk matches when, for every filter key, the chunk's tag value
    contains the filter value. Blank filter values are ignored.
    """

    terms: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: dict[str, str] | None) -> "TagFilter":
        """Build a filter from request tag_filters, dropping blank values."""
        terms = {
            str(key).lower(): str(value).strip().lower()
            for key, value in (mapping or {}).items()
            if value is not None and str(value).strip()
        }
        return cls(terms=terms)

    @property
    def is_empty(self) -> bool:
        return not self.terms

    def matches(self, tags: dict[str, str]) -> bool:
        """Return True when every filter term is a substring of the matching tag."""
        if not self.terms:
            return True
        lowered = {key.lower(): value.lower() for key, value in tags.items()}
        return all(needle in lowered.get(key, "") for key, needle in self.terms.items())
