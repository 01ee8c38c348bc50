# models/book_models.py
"""Pydantic models for book input and per-section analysis results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MODERATION_CATEGORIES: tuple[str, ...] = (
    "sexual",
    "sexual/minors",
    "harassment",
    "harassment/threatening",
    "hate",
    "hate/threatening",
    "illicit",
    "illicit/violent",
    "self-harm",
    "self-harm/intent",
    "self-harm/instructions",
    "violence",
    "violence/graphic",
)


class BookBaseModel(BaseModel):
    """Base model serializing to camelCase keys while accepting either form."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Section(BookBaseModel):
    """One titled unit of the source document."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str


class Book(BookBaseModel):
    sections: list[Section] = Field(default_factory=list)


class ModerationResult(BookBaseModel):
    """Moderation verdict for a single piece of text."""

    flagged: bool = False
    categories: dict[str, bool] = Field(default_factory=dict)
    scores: dict[str, float] = Field(default_factory=dict)


class SectionAnalysis(BookBaseModel):
    """Shape requested from the generation service for one section."""

    title: str = ""
    summary: str = Field(
        description="A clear, comprehensive overview of the section's content."
    )
    writing_style: str = Field(
        description="2-4 key descriptive words, e.g. 'descriptive, dialogue-heavy, fast-paced'."
    )
    tonality: str = Field(
        description="2-4 emotional or mood keywords, e.g. 'tense, reflective, humorous'."
    )
    key_events: list[str] = Field(
        default_factory=list,
        description="Main plot points and significant developments.",
    )
    quality_issues: list[str] = Field(
        default_factory=list,
        description="Orthography, grammar or plot inconsistencies. Empty if none were found.",
    )


class SectionSummary(BookBaseModel):
    """Structured summary of one section, aligned by index with the input."""

    title: str
    summary: str
    writing_style: str
    tonality: str
    key_events: list[str] = Field(default_factory=list)
    quality_issues: list[str] = Field(default_factory=list)
    moderation: ModerationResult | None = None

    @classmethod
    def from_analysis(
        cls,
        section: Section,
        analysis: SectionAnalysis,
        moderation: ModerationResult | None,
    ) -> SectionSummary:
        """Combine a service analysis with the source title and moderation."""
        return cls(
            title=section.title,
            summary=analysis.summary,
            writing_style=analysis.writing_style,
            tonality=analysis.tonality,
            key_events=list(analysis.key_events),
            quality_issues=list(analysis.quality_issues),
            moderation=moderation,
        )


class BookSummary(BookBaseModel):
    sections: list[SectionSummary] = Field(default_factory=list)
