"""Central package for Book AI data models."""

from .book_models import (
    MODERATION_CATEGORIES,
    Book,
    BookSummary,
    ModerationResult,
    Section,
    SectionAnalysis,
    SectionSummary,
)
from .sample_models import ContentElement, ContentType, SampleSelection
from .summary_models import (
    FIELD_SHAPES,
    ComprehensiveAnalysis,
    ComprehensiveSummary,
    ExportedHistory,
    FieldShape,
    FieldValue,
    ModerationVerdict,
    RefinementEntry,
    SummaryField,
)

__all__ = [
    "MODERATION_CATEGORIES",
    "Book",
    "BookSummary",
    "ModerationResult",
    "Section",
    "SectionAnalysis",
    "SectionSummary",
    "ContentElement",
    "ContentType",
    "SampleSelection",
    "FIELD_SHAPES",
    "ComprehensiveAnalysis",
    "ComprehensiveSummary",
    "ExportedHistory",
    "FieldShape",
    "FieldValue",
    "ModerationVerdict",
    "RefinementEntry",
    "SummaryField",
]
