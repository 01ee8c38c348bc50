# processing/moderation.py
"""Fold per-section moderation results into one book-level verdict."""

from __future__ import annotations

from models import MODERATION_CATEGORIES, BookSummary, ModerationVerdict


def aggregate_moderation(book_summary: BookSummary) -> ModerationVerdict:
    """Logical OR of ``flagged`` and of every category across sections.

    Sections without a moderation result contribute nothing. Categories
    outside the fixed set are ignored.
    """
    flagged = False
    categories = {category: False for category in MODERATION_CATEGORIES}

    for section in book_summary.sections:
        moderation = section.moderation
        if moderation is None:
            continue
        flagged = flagged or moderation.flagged
        for category in MODERATION_CATEGORIES:
            if moderation.categories.get(category, False):
                categories[category] = True

    return ModerationVerdict(flagged=flagged, moderation_categories=categories)
