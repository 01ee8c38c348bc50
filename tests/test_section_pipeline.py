# tests/test_section_pipeline.py
import asyncio
import re

import pytest

from core.exceptions import ConfigurationError, GenerationError, SectionSummarizationError
from core.generation import GenerationResult
from models import Book, ModerationResult, Section, SectionAnalysis
from processing.section_pipeline import BookSummarizer

_TITLE_RE = re.compile(r"Title: (.*)\nContent:")


def _title_of(prompt: str) -> str:
    return _TITLE_RE.search(prompt).group(1)


def _book(count: int) -> Book:
    return Book(
        sections=[
            Section(title=f"Chapter {i}", content=f"Content of chapter {i}.")
            for i in range(count)
        ]
    )


class JitterGenerator:
    """Answers later sections faster so completion order is reversed."""

    def __init__(self, total: int, fail_titles: set[str] | None = None, raise_titles=()):
        self.total = total
        self.fail_titles = fail_titles or set()
        self.raise_titles = set(raise_titles)
        self.calls: list[str] = []
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, prompt, shape, system_prompt=None):
        title = _title_of(prompt)
        index = int(title.split()[-1])
        self.calls.append(title)
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep((self.total - index) * 0.002)
        finally:
            self.in_flight -= 1
        if title in self.raise_titles:
            raise GenerationError("connection reset")
        if title in self.fail_titles:
            return GenerationResult.fail("schema validation failed")
        assert shape is SectionAnalysis
        return GenerationResult.ok(
            SectionAnalysis(
                title="Title invented by the model",
                summary=f"Summary of {title}",
                writing_style="sparse",
                tonality="tense",
                key_events=[f"event in {title}"],
            )
        )


class FakeModeration:
    def __init__(self, flag_text: str | None = None, fail: bool = False):
        self.flag_text = flag_text
        self.fail = fail
        self.texts: list[str] = []

    async def classify(self, text):
        self.texts.append(text)
        if self.fail:
            raise GenerationError("moderation unavailable")
        flagged = text == self.flag_text
        return ModerationResult(flagged=flagged, categories={"violence": flagged})


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 3, 75])
async def test_results_follow_input_order(limit):
    generator = JitterGenerator(total=12)
    summarizer = BookSummarizer(generator, concurrency_limit=limit)

    result = await summarizer.summarize_sections(_book(12))

    assert len(result.sections) == 12
    for i, section in enumerate(result.sections):
        assert section.title == f"Chapter {i}"
        assert section.summary == f"Summary of Chapter {i}"
        assert section.moderation is None
    assert summarizer.get_summary() == result


@pytest.mark.asyncio
async def test_concurrency_limit_is_respected():
    generator = JitterGenerator(total=10)
    summarizer = BookSummarizer(generator, concurrency_limit=3)

    await summarizer.summarize_sections(_book(10))

    assert generator.max_in_flight <= 3
    assert len(generator.calls) == 10


@pytest.mark.asyncio
async def test_sections_are_admitted_in_input_order():
    generator = JitterGenerator(total=5)
    summarizer = BookSummarizer(generator, concurrency_limit=1)

    await summarizer.summarize_sections(_book(5))

    assert generator.calls == [f"Chapter {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_failure_result_aborts_pipeline():
    generator = JitterGenerator(total=6, fail_titles={"Chapter 2"})
    summarizer = BookSummarizer(generator, concurrency_limit=1)

    with pytest.raises(SectionSummarizationError) as exc_info:
        await summarizer.summarize_sections(_book(6))

    assert exc_info.value.index == 2
    assert exc_info.value.title == "Chapter 2"
    assert "schema validation failed" in str(exc_info.value)
    # Queued sections are never started after the failure.
    assert generator.calls == ["Chapter 0", "Chapter 1", "Chapter 2"]
    assert summarizer.get_summary() is None


@pytest.mark.asyncio
async def test_raised_error_aborts_pipeline():
    generator = JitterGenerator(total=4, raise_titles={"Chapter 3"})
    summarizer = BookSummarizer(generator, concurrency_limit=4)

    with pytest.raises(SectionSummarizationError) as exc_info:
        await summarizer.summarize_sections(_book(4))

    assert exc_info.value.index == 3
    assert isinstance(exc_info.value, GenerationError)


@pytest.mark.asyncio
async def test_moderation_is_attached_per_section():
    generator = JitterGenerator(total=3)
    moderation = FakeModeration(flag_text="Content of chapter 1.")
    summarizer = BookSummarizer(generator, moderation=moderation, concurrency_limit=2)

    result = await summarizer.summarize_sections(_book(3))

    assert sorted(moderation.texts) == [f"Content of chapter {i}." for i in range(3)]
    assert [s.moderation.flagged for s in result.sections] == [False, True, False]
    assert result.sections[1].moderation.categories["violence"] is True


@pytest.mark.asyncio
async def test_moderation_failure_fails_the_section():
    generator = JitterGenerator(total=2)
    summarizer = BookSummarizer(
        generator, moderation=FakeModeration(fail=True), concurrency_limit=2
    )

    with pytest.raises(SectionSummarizationError, match="moderation unavailable"):
        await summarizer.summarize_sections(_book(2))


@pytest.mark.asyncio
async def test_previous_analyses_feed_later_prompts():
    generator = JitterGenerator(total=3)
    summarizer = BookSummarizer(generator, concurrency_limit=1, history_size=1)

    await summarizer.summarize_sections(_book(3))

    assert "Summary of Chapter 0" not in generator.prompts[0]
    assert "Summary of Chapter 0" in generator.prompts[1]
    assert "Summary of Chapter 0" not in generator.prompts[2]
    assert "Summary of Chapter 1" in generator.prompts[2]


@pytest.mark.asyncio
async def test_empty_book_returns_empty_summary():
    summarizer = BookSummarizer(JitterGenerator(total=0))
    result = await summarizer.summarize_sections(Book())
    assert result.sections == []


def test_invalid_concurrency_limit():
    with pytest.raises(ConfigurationError):
        BookSummarizer(JitterGenerator(total=0), concurrency_limit=0)


class GatedGenerator:
    """Fails one title at once and holds another until released."""

    def __init__(self, fail_title: str, held_title: str):
        self.fail_title = fail_title
        self.held_title = held_title
        self.release = asyncio.Event()
        self.held_done = asyncio.Event()
        self.prompts: list[str] = []

    async def generate(self, prompt, shape, system_prompt=None):
        title = _title_of(prompt)
        self.prompts.append(prompt)
        if title == self.fail_title:
            return GenerationResult.fail("bad section")
        if title == self.held_title:
            await self.release.wait()
            self.held_done.set()
        return GenerationResult.ok(
            SectionAnalysis(summary=f"DISCARDED-{title}", writing_style="w", tonality="t")
        )


@pytest.mark.asyncio
async def test_results_finishing_after_abort_do_not_reach_later_prompts():
    generator = GatedGenerator(fail_title="B", held_title="A")
    summarizer = BookSummarizer(generator, concurrency_limit=2)
    first = Book(sections=[Section(title="A", content="a"), Section(title="B", content="b")])

    with pytest.raises(SectionSummarizationError):
        await summarizer.summarize_sections(first)

    generator.release.set()
    await generator.held_done.wait()
    await asyncio.sleep(0)
    assert not summarizer._history
    generator.prompts.clear()

    result = await summarizer.summarize_sections(
        Book(sections=[Section(title="C", content="c")])
    )

    assert [s.title for s in result.sections] == ["C"]
    assert "DISCARDED" not in generator.prompts[0]
