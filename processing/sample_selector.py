# processing/sample_selector.py
"""Pick table-of-contents entries that make a good reader sample."""

from __future__ import annotations

from typing import Any

import structlog

from core.exceptions import GenerationError
from core.generation import TextGenerationPort
from models import ContentElement, SampleSelection
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SAMPLE_ITEMS = 6


class SampleSelector:
    """Ask the generation service which content entries belong in a sampler."""

    def __init__(
        self,
        generator: TextGenerationPort,
        max_items: int = DEFAULT_MAX_SAMPLE_ITEMS,
        log: Any = None,
    ) -> None:
        self._generator = generator
        self.max_items = max_items
        self._log = log or logger.bind(component="SampleSelector")

    async def select_content(self, contents: list[ContentElement]) -> list[str]:
        """Return selected ids that exist in ``contents``, in the service's order."""
        self._log.info("Selecting content for sampler", entries=len(contents))
        prompt = render_prompt(
            "sample_selection.j2",
            {"contents": contents, "max_items": self.max_items},
        )
        result = await self._generator.generate(
            prompt,
            SampleSelection,
            system_prompt=render_prompt("sample_selection_system.j2", {}),
        )
        if not result.success or result.data is None:
            self._log.error("Selection failed", reason=result.message)
            raise GenerationError(f"Failed to select sampler content: {result.message}")

        valid_ids = {
            content_id for element in contents for content_id in element.all_ids()
        }
        selected = [
            content_id
            for content_id in result.data.selected_ids
            if content_id in valid_ids
        ]
        dropped = len(result.data.selected_ids) - len(selected)
        if dropped:
            self._log.warning("Ignoring unknown ids from selection", dropped=dropped)
        self._log.info("Selected sections for sampler", selected=len(selected))
        return selected
