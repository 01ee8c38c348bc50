# models/sample_models.py
"""Models describing a book's table of contents for sampler selection."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .book_models import BookBaseModel

ContentType = Literal["frontmatter", "bodymatter", "backmatter"]


class ContentElement(BookBaseModel):
    """A navigable content entry, possibly with nested children."""

    id: str
    label: str
    href: str
    index: int
    type: ContentType | None = None
    role: str | None = None
    children: list[ContentElement] = Field(default_factory=list)

    def all_ids(self) -> list[str]:
        ids = [self.id]
        for child in self.children:
            ids.extend(child.all_ids())
        return ids


class SampleSelection(BookBaseModel):
    selected_ids: list[str] = Field(default_factory=list)
