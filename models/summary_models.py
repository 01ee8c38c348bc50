# models/summary_models.py
"""Models for the book-level analysis document and its refinement history."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import Field, field_validator

from .book_models import MODERATION_CATEGORIES, BookBaseModel

FieldValue = Union[str, list[str]]


class SummaryField(str, Enum):
    """Refinable fields of a :class:`ComprehensiveSummary`, by wire name."""

    SUMMARY = "summary"
    WRITING_STYLE = "writingStyle"
    QUALITY = "quality"
    KEYWORDS = "keywords"
    GENRES = "genres"
    MARKETING_COPY = "marketingCopy"
    COMPARABLE_AUTHORS = "comparableAuthors"


class FieldShape(str, Enum):
    TEXT = "text"
    TEXT_LIST = "text_list"


FIELD_SHAPES: dict[SummaryField, FieldShape] = {
    SummaryField.SUMMARY: FieldShape.TEXT,
    SummaryField.WRITING_STYLE: FieldShape.TEXT,
    SummaryField.QUALITY: FieldShape.TEXT,
    SummaryField.KEYWORDS: FieldShape.TEXT_LIST,
    SummaryField.GENRES: FieldShape.TEXT_LIST,
    SummaryField.MARKETING_COPY: FieldShape.TEXT,
    SummaryField.COMPARABLE_AUTHORS: FieldShape.TEXT_LIST,
}


def _empty_categories() -> dict[str, bool]:
    return {category: False for category in MODERATION_CATEGORIES}


class ComprehensiveAnalysis(BookBaseModel):
    """Shape requested from the generation service for the whole book."""

    summary: str = Field(
        description="A cohesive, extensive summary connecting all sections (at least 500 words)."
    )
    writing_style: str = Field(description="Analysis of the overall writing style.")
    quality: str | None = Field(
        default=None,
        description="Assessment of recurring orthography, grammar and plot-consistency issues.",
    )
    keywords: list[str] = Field(
        default_factory=list,
        description="10-15 thematic keywords or short phrases.",
    )
    genres: list[str] = Field(
        default_factory=list, description="Up to three best-fitting genres."
    )
    marketing_copy: str = Field(
        description="Retail marketing copy that does not give away important developments."
    )
    comparable_authors: list[str] = Field(
        default_factory=list,
        description="Up to three comparable authors (first and last name).",
    )


class ModerationVerdict(BookBaseModel):
    """Book-level moderation folded from per-section results."""

    flagged: bool = False
    moderation_categories: dict[str, bool] = Field(default_factory=_empty_categories)


class ComprehensiveSummary(ComprehensiveAnalysis):
    """Book-level analysis document edited by the refinement engine."""

    flagged: bool = False
    moderation_categories: dict[str, bool] = Field(default_factory=_empty_categories)

    @classmethod
    def from_analysis(
        cls, analysis: ComprehensiveAnalysis, verdict: ModerationVerdict
    ) -> ComprehensiveSummary:
        return cls(
            **analysis.model_dump(),
            flagged=verdict.flagged,
            moderation_categories=dict(verdict.moderation_categories),
        )

    def get_field(self, field: SummaryField) -> FieldValue | None:
        """Return the current value of ``field``."""
        getter, _ = _FIELD_ACCESSORS[field]
        return getter(self)

    def with_field(
        self, field: SummaryField, value: FieldValue | None
    ) -> ComprehensiveSummary:
        """Return a copy of this document with ``field`` replaced by ``value``."""
        _, setter = _FIELD_ACCESSORS[field]
        return setter(self, value)


_Getter = Callable[[ComprehensiveSummary], "FieldValue | None"]
_Setter = Callable[[ComprehensiveSummary, "FieldValue | None"], ComprehensiveSummary]

_FIELD_ACCESSORS: dict[SummaryField, tuple[_Getter, _Setter]] = {
    SummaryField.SUMMARY: (
        lambda s: s.summary,
        lambda s, v: s.model_copy(update={"summary": v}, deep=True),
    ),
    SummaryField.WRITING_STYLE: (
        lambda s: s.writing_style,
        lambda s, v: s.model_copy(update={"writing_style": v}, deep=True),
    ),
    SummaryField.QUALITY: (
        lambda s: s.quality,
        lambda s, v: s.model_copy(update={"quality": v}, deep=True),
    ),
    SummaryField.KEYWORDS: (
        lambda s: list(s.keywords),
        lambda s, v: s.model_copy(update={"keywords": list(v or [])}, deep=True),
    ),
    SummaryField.GENRES: (
        lambda s: list(s.genres),
        lambda s, v: s.model_copy(update={"genres": list(v or [])}, deep=True),
    ),
    SummaryField.MARKETING_COPY: (
        lambda s: s.marketing_copy,
        lambda s, v: s.model_copy(update={"marketing_copy": v}, deep=True),
    ),
    SummaryField.COMPARABLE_AUTHORS: (
        lambda s: list(s.comparable_authors),
        lambda s, v: s.model_copy(
            update={"comparable_authors": list(v or [])}, deep=True
        ),
    ),
}


class RefinementEntry(BookBaseModel):
    """One atomic edit applied to a single field."""

    timestamp: datetime
    section: SummaryField
    instruction: str
    previous_content: FieldValue | None = None
    updated_content: FieldValue

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ExportedHistory(BookBaseModel):
    """Serializable snapshot of a refinement session."""

    version: str
    timestamp: datetime | None = None
    initial_summary: ComprehensiveSummary
    history: list[RefinementEntry] = Field(default_factory=list)
    current_summary: ComprehensiveSummary
