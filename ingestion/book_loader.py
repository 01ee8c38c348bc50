# ingestion/book_loader.py
"""Build a :class:`Book` from markdown or from title/content pairs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from models import Book, Section

logger = structlog.get_logger(__name__)

HEADING_PREFIX = "# "

BookSource = str | Mapping[str, str] | Iterable[tuple[str, str]]


def split_into_sections(markdown: str) -> list[Section]:
    """Split markdown on top-level ``# `` headings.

    Text before the first heading is ignored. The last section is only kept
    when at least one line follows its heading.
    """
    sections: list[Section] = []
    current_title: str | None = None
    content: list[str] = []

    for line in markdown.split("\n"):
        if line.startswith(HEADING_PREFIX):
            if current_title is not None:
                sections.append(
                    Section(title=current_title, content="\n".join(content).strip())
                )
                content = []
            current_title = line[len(HEADING_PREFIX) :].strip()
        elif current_title is not None:
            content.append(line)

    if current_title is not None and content:
        sections.append(Section(title=current_title, content="\n".join(content).strip()))

    return sections


class BookLoader:
    """Normalize the supported input representations into a :class:`Book`."""

    @staticmethod
    def load(content: BookSource) -> Book:
        if isinstance(content, str):
            book = Book(sections=split_into_sections(content))
        else:
            pairs = content.items() if isinstance(content, Mapping) else content
            book = Book(
                sections=[Section(title=title, content=text) for title, text in pairs]
            )
        logger.debug("Loaded book", sections=len(book.sections))
        return book

    @staticmethod
    def load_file(path: str) -> Book:
        with open(path, encoding="utf-8") as f:
            return BookLoader.load(f.read())
