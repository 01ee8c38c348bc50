# processing/section_pipeline.py
"""Concurrent fan-out/fan-in of book sections through the generation port."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any

import structlog

from config import settings
from core.exceptions import (
    ConfigurationError,
    SectionSummarizationError,
)
from core.generation import ModerationPort, TextGenerationPort
from models import Book, BookSummary, Section, SectionAnalysis, SectionSummary
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)


def _consume_task_outcome(task: asyncio.Task) -> None:
    """Mark the outcome of a discarded task as retrieved."""
    if not task.cancelled():
        task.exception()


class BookSummarizer:
    """Summarize every section of a book under a concurrency cap.

    At most ``concurrency_limit`` sections are in flight; the rest wait in
    input order. Each result is written to the slot matching its section's
    index, so the returned :class:`BookSummary` follows input order no
    matter which section finishes first.

    The first failing section aborts the run. Sections still waiting for a
    slot are never started; sections already running finish in the
    background and their results are dropped.
    """

    def __init__(
        self,
        generator: TextGenerationPort,
        moderation: ModerationPort | None = None,
        concurrency_limit: int = settings.SECTION_CONCURRENCY_LIMIT,
        history_size: int = settings.SECTION_HISTORY_SIZE,
        log: Any = None,
    ) -> None:
        if concurrency_limit < 1:
            raise ConfigurationError("concurrency_limit must be at least 1")
        self._generator = generator
        self._moderation = moderation
        self.concurrency_limit = concurrency_limit
        self._history: deque[SectionAnalysis] = deque(maxlen=history_size)
        self._summary: BookSummary | None = None
        self._log = log or logger.bind(component="BookSummarizer")

    def build_prompt(self, section: Section) -> str:
        """Render the analysis prompt for one section."""
        return render_prompt(
            "section_summary.j2",
            {
                "schema": SectionAnalysis.model_json_schema(by_alias=True),
                "history": [entry.to_dict() for entry in self._history],
                "title": section.title,
                "content": section.content,
            },
        )

    async def _summarize_section(
        self, index: int, section: Section, total: int, abort: asyncio.Event
    ) -> SectionSummary:
        self._log.info(
            "Processing section",
            position=f"{index + 1}/{total}",
            title=section.title,
        )
        prompt = self.build_prompt(section)
        try:
            if self._moderation is not None:
                result, moderation = await asyncio.gather(
                    self._generator.generate(prompt, SectionAnalysis),
                    self._moderation.classify(section.content),
                )
            else:
                result = await self._generator.generate(prompt, SectionAnalysis)
                moderation = None
        except ConfigurationError:
            raise
        except Exception as exc:
            self._log.error(
                "Section call raised", index=index, title=section.title, error=str(exc)
            )
            raise SectionSummarizationError(index, section.title, str(exc)) from exc

        if not result.success or result.data is None:
            self._log.error(
                "Failed to summarize section",
                index=index,
                title=section.title,
                reason=result.message,
            )
            raise SectionSummarizationError(index, section.title, result.message)

        if not abort.is_set():
            self._history.append(result.data)
        self._log.info("Successfully processed section", index=index, title=section.title)
        return SectionSummary.from_analysis(section, result.data, moderation)

    async def summarize_sections(self, book: Book) -> BookSummary:
        """Summarize all sections of ``book``; fails on the first section error."""
        sections = list(book.sections)
        total = len(sections)
        self._log.info(
            "Starting section summarization",
            sections=total,
            concurrency_limit=self.concurrency_limit,
            moderation=self._moderation is not None,
        )

        self._history.clear()
        slots: list[SectionSummary | None] = [None] * total
        semaphore = asyncio.Semaphore(self.concurrency_limit)
        abort = asyncio.Event()
        errors: list[BaseException] = []

        async def run(index: int, section: Section) -> None:
            async with semaphore:
                if abort.is_set():
                    return
                try:
                    slots[index] = await self._summarize_section(
                        index, section, total, abort
                    )
                except Exception as exc:
                    if not abort.is_set():
                        abort.set()
                        errors.append(exc)
                    raise

        tasks = [
            asyncio.create_task(run(index, section), name=f"section-{index}")
            for index, section in enumerate(sections)
        ]
        if tasks:
            try:
                await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            except asyncio.CancelledError:
                for task in tasks:
                    task.cancel()
                raise

        if errors:
            for task in tasks:
                if task.done():
                    _consume_task_outcome(task)
                else:
                    task.add_done_callback(_consume_task_outcome)
            self._log.error("Processing failed", error=str(errors[0]))
            raise errors[0]

        summaries = [slot for slot in slots if slot is not None]
        self._summary = BookSummary(sections=summaries)
        self._log.info("Section summarization complete", sections=len(summaries))
        return self._summary

    def get_summary(self) -> BookSummary | None:
        return self._summary
