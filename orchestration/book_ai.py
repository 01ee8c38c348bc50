# orchestration/book_ai.py
"""High-level entry point tying loading, summarization and refinement together."""

from __future__ import annotations

import structlog

from config import BookAISettings, settings
from core.exceptions import ConfigurationError, StateError
from core.generation import LLMModerationClassifier, LLMTextGenerator
from core.llm_interface import LLMService
from ingestion.book_loader import BookLoader, BookSource
from models import Book, BookSummary, ComprehensiveSummary, ContentElement
from processing.refinement import RefinementHistoryEngine
from processing.sample_selector import SampleSelector
from processing.section_pipeline import BookSummarizer
from processing.summary_analyzer import SummariesAnalyzer

logger = structlog.get_logger(__name__)


class BookAI:
    """Load a book, summarize its sections, analyze it and refine the result."""

    def __init__(
        self,
        config: BookAISettings | None = None,
        service: LLMService | None = None,
    ) -> None:
        self.config = config or settings
        self._validate_config()

        self._service = service or LLMService(
            api_base=self.config.OPENAI_API_BASE,
            api_key=self.config.OPENAI_API_KEY,
            timeout=self.config.HTTPX_TIMEOUT,
        )
        self.section_generator = LLMTextGenerator(
            self.config.SECTION_SUMMARY_MODEL,
            temperature=self.config.TEMPERATURE_SECTION_SUMMARY,
            max_tokens=self.config.MAX_GENERATION_TOKENS,
            service=self._service,
        )
        self.analysis_generator = LLMTextGenerator(
            self.config.ANALYSIS_MODEL,
            temperature=self.config.TEMPERATURE_ANALYSIS,
            max_tokens=self.config.MAX_GENERATION_TOKENS,
            service=self._service,
        )
        self.refinement_generator = LLMTextGenerator(
            self.config.REFINEMENT_MODEL,
            temperature=self.config.TEMPERATURE_REFINEMENT,
            max_tokens=self.config.MAX_GENERATION_TOKENS,
            service=self._service,
        )
        self.sampler_generator = LLMTextGenerator(
            self.config.SAMPLER_MODEL,
            temperature=self.config.TEMPERATURE_SAMPLER,
            max_tokens=self.config.MAX_SAMPLER_TOKENS,
            service=self._service,
        )
        self.moderation = (
            LLMModerationClassifier(self.config.MODERATION_MODEL, service=self._service)
            if self.config.ENABLE_MODERATION
            else None
        )

        self.book: Book | None = None
        self.summarizer: BookSummarizer | None = None
        logger.info("BookAI initialized", moderation=self.moderation is not None)

    def _validate_config(self) -> None:
        if not self.config.OPENAI_API_KEY.strip():
            raise ConfigurationError("OPENAI_API_KEY is required.")
        missing = [
            name
            for name in (
                "SECTION_SUMMARY_MODEL",
                "ANALYSIS_MODEL",
                "REFINEMENT_MODEL",
                "SAMPLER_MODEL",
            )
            if not getattr(self.config, name)
        ]
        if self.config.ENABLE_MODERATION and not self.config.MODERATION_MODEL:
            missing.append("MODERATION_MODEL")
        if missing:
            raise ConfigurationError(f"Missing model configuration: {', '.join(missing)}")

    def load(self, content: BookSource) -> Book:
        logger.info("Loading book content")
        return self._set_book(BookLoader.load(content))

    def load_file(self, path: str) -> Book:
        logger.info("Loading book file", path=path)
        return self._set_book(BookLoader.load_file(path))

    def _set_book(self, book: Book) -> Book:
        self.book = book
        self.summarizer = BookSummarizer(
            self.section_generator,
            moderation=self.moderation,
            concurrency_limit=self.config.SECTION_CONCURRENCY_LIMIT,
            history_size=self.config.SECTION_HISTORY_SIZE,
        )
        logger.info("Loaded book", sections=len(self.book.sections))
        return self.book

    def get_book(self) -> Book | None:
        return self.book

    async def get_section_summaries(self) -> BookSummary:
        if self.book is None or self.summarizer is None:
            raise StateError("No book loaded. Call load() first.")
        return await self.summarizer.summarize_sections(self.book)

    async def analyze(
        self, summaries: BookSummary | None = None
    ) -> ComprehensiveSummary:
        """Build the book-level analysis, summarizing sections first if needed."""
        if summaries is None:
            summaries = await self.get_section_summaries()
        analyzer = SummariesAnalyzer(self.analysis_generator)
        return await analyzer.analyze(summaries)

    def start_refinement(
        self, summary: ComprehensiveSummary | None = None
    ) -> RefinementHistoryEngine:
        return RefinementHistoryEngine(
            self.refinement_generator,
            summary,
            version=self.config.HISTORY_VERSION,
            same_field_history=self.config.REFINEMENT_SAME_FIELD_HISTORY,
            other_field_history=self.config.REFINEMENT_OTHER_FIELD_HISTORY,
        )

    async def select_sample(self, contents: list[ContentElement]) -> list[str]:
        return await SampleSelector(self.sampler_generator).select_content(contents)

    async def aclose(self) -> None:
        await self._service.aclose()
