# core/generation.py
"""Text generation and moderation ports plus their LLM-backed adapters.

Components in :mod:`processing` depend only on the two protocols defined
here. A generation call never reports failure through empty data: it
returns a :class:`GenerationResult` whose ``success`` flag is ``False`` and
whose ``message`` explains why.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from core.exceptions import GenerationError
from core.llm_interface import LLMService, llm_service
from models import ModerationResult
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    """Discriminated outcome of a generation call."""

    success: bool
    data: T | None = None
    message: str = ""

    @classmethod
    def ok(cls, data: T) -> GenerationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> GenerationResult[T]:
        return cls(success=False, message=message)


class TextGenerationPort(Protocol):
    """Maps a prompt and a target shape to a typed value or a failure."""

    async def generate(
        self, prompt: str, shape: type[T], system_prompt: str | None = None
    ) -> GenerationResult[T]: ...


class ModerationPort(Protocol):
    """Classifies text against the fixed moderation categories."""

    async def classify(self, text: str) -> ModerationResult: ...


class LLMTextGenerator:
    """Text generation port backed by :class:`LLMService`.

    ``shape`` is either ``str`` (the raw, uncleaned response is returned) or
    a pydantic model class. Model responses are validated against the
    class; when validation fails the model is shown the error and asked for
    a corrected object up to ``repair_attempts`` times.
    """

    def __init__(
        self,
        model_name: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        service: LLMService | None = None,
        repair_attempts: int = 1,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.repair_attempts = repair_attempts
        self._service = service or llm_service

    async def _call(
        self, prompt: str, system_prompt: str | None, auto_clean: bool
    ) -> str:
        text, _usage = await self._service.async_call_llm(
            model_name=self.model_name,
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            auto_clean_response=auto_clean,
        )
        return text

    async def generate(
        self, prompt: str, shape: type[T], system_prompt: str | None = None
    ) -> GenerationResult[T]:
        structured = isinstance(shape, type) and issubclass(shape, BaseModel)
        try:
            response_text = await self._call(prompt, system_prompt, structured)
        except GenerationError as exc:
            logger.warning("Generation call failed", model=self.model_name, error=str(exc))
            return GenerationResult.fail(str(exc))

        if not structured:
            return GenerationResult.ok(response_text)

        error_text = ""
        for attempt in range(self.repair_attempts + 1):
            try:
                return GenerationResult.ok(shape.model_validate_json(response_text))
            except ValidationError as exc:
                error_text = str(exc)
            if attempt == self.repair_attempts:
                break
            logger.info(
                "Response did not validate; requesting repair",
                model=self.model_name,
                shape=shape.__name__,
                attempt=attempt + 1,
            )
            repair_prompt = render_prompt(
                "json_repair.j2",
                {
                    "original_prompt": prompt,
                    "response_text": response_text,
                    "error_text": error_text,
                },
            )
            try:
                response_text = await self._call(repair_prompt, system_prompt, True)
            except GenerationError as exc:
                return GenerationResult.fail(str(exc))

        return GenerationResult.fail(
            f"Response does not match {shape.__name__}: {error_text}"
        )


class LLMModerationClassifier:
    """Moderation port backed by the moderation endpoint."""

    def __init__(
        self, model_name: str | None = None, service: LLMService | None = None
    ) -> None:
        self.model_name = model_name
        self._service = service or llm_service

    async def classify(self, text: str) -> ModerationResult:
        return await self._service.async_moderate(text, self.model_name)
