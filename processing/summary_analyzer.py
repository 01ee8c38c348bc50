# processing/summary_analyzer.py
"""Turn per-section summaries into one book-level analysis document."""

from __future__ import annotations

from typing import Any

import structlog

from core.exceptions import GenerationError
from core.generation import TextGenerationPort
from models import BookSummary, ComprehensiveAnalysis, ComprehensiveSummary
from processing.moderation import aggregate_moderation
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)


class SummariesAnalyzer:
    """Ask the generation service for a book-level analysis of section summaries."""

    def __init__(self, generator: TextGenerationPort, log: Any = None) -> None:
        self._generator = generator
        self._log = log or logger.bind(component="SummariesAnalyzer")

    def build_prompt(self, book_summary: BookSummary) -> str:
        return render_prompt(
            "comprehensive_analysis.j2", {"sections": book_summary.sections}
        )

    async def analyze(self, book_summary: BookSummary) -> ComprehensiveSummary:
        """Analyze ``book_summary`` and attach the aggregated moderation verdict."""
        if not book_summary.sections:
            raise GenerationError("Cannot analyze a book summary with no sections.")

        self._log.info("Analyzing summaries", sections=len(book_summary.sections))
        result = await self._generator.generate(
            self.build_prompt(book_summary),
            ComprehensiveAnalysis,
            system_prompt=render_prompt("comprehensive_analysis_system.j2", {}),
        )
        if not result.success or result.data is None:
            self._log.error("Analysis failed", reason=result.message)
            raise GenerationError(f"Failed to analyze summaries: {result.message}")

        verdict = aggregate_moderation(book_summary)
        self._log.info(
            "Analysis complete",
            flagged=verdict.flagged,
            keywords=len(result.data.keywords),
        )
        return ComprehensiveSummary.from_analysis(result.data, verdict)
