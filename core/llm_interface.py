# core/llm_interface.py
"""
Handles all direct interactions with the OpenAI-compatible chat completion
and moderation endpoints. Includes response cleaning and a cached moderation
lookup. Transport failures surface as ``GenerationError``; nothing is retried.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import structlog
from async_lru import alru_cache

from config import settings
from core.exceptions import ConfigurationError, GenerationError
from models import MODERATION_CATEGORIES, ModerationResult

logger = structlog.get_logger(__name__)


def _completion_token_param(api_base: str) -> str:
    """Return the token count parameter expected by the provider."""
    if "api.openai.com" in api_base or "api.anthropic.com" in api_base:
        return "max_completion_tokens"
    return "max_tokens"


class LLMService:
    """Utility class for interacting with LLM and moderation endpoints."""

    def __init__(
        self,
        api_base: str | None = None,
        api_key: str | None = None,
        timeout: float = settings.HTTPX_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = (api_base or settings.OPENAI_API_BASE).rstrip("/")
        self._api_key = api_key
        # Use a single async client for all requests to reuse connections
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else settings.OPENAI_API_KEY

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.api_key.strip():
            raise ConfigurationError("OPENAI_API_KEY is required for LLM calls.")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post_json(
        self, path: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                f"{self.api_base}{path}", json=payload, headers=headers
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e_status:
            raise GenerationError(
                f"HTTP status {e_status.response.status_code} from {path}: "
                f"{e_status.response.text[:200]}"
            ) from e_status
        except httpx.HTTPError as e_req:
            raise GenerationError(f"Request to {path} failed: {e_req}") from e_req
        except json.JSONDecodeError as e_json:
            raise GenerationError(f"Invalid JSON body from {path}: {e_json}") from e_json

    async def async_call_llm(
        self,
        model_name: str,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        auto_clean_response: bool = True,
    ) -> tuple[str, dict[str, int] | None]:
        """Call the chat completion endpoint and return text plus usage."""
        if not model_name:
            raise ConfigurationError("async_call_llm: model_name is required.")
        if not prompt or not prompt.strip():
            raise GenerationError("async_call_llm: empty or invalid prompt.")

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": temperature if temperature is not None else 0.0,
            _completion_token_param(self.api_base): (
                max_tokens if max_tokens is not None else settings.MAX_GENERATION_TOKENS
            ),
        }
        logger.debug(
            "Calling LLM",
            model=model_name,
            prompt_chars=len(prompt),
            temperature=payload["temperature"],
        )

        data = await self._post_json("/chat/completions", payload, self._headers())
        choices = data.get("choices") or []
        message = choices[0].get("message") if choices else None
        raw_text = message.get("content") if message else None
        if not isinstance(raw_text, str) or not raw_text.strip():
            logger.error(
                "LLM response missing choices/content despite 200 OK",
                model=model_name,
                data=str(data)[:300],
            )
            raise GenerationError(f"Model '{model_name}' returned no content.")

        usage = data.get("usage")
        if auto_clean_response:
            raw_text = self.clean_model_response(raw_text)
        return raw_text, usage

    @alru_cache(maxsize=settings.MODERATION_CACHE_SIZE)
    async def async_moderate(
        self, text: str, model_name: str | None = None
    ) -> ModerationResult:
        """Classify ``text`` with the moderation endpoint."""
        payload = {
            "model": model_name or settings.MODERATION_MODEL,
            "input": text,
        }
        data = await self._post_json("/moderations", payload, self._headers())
        results = data.get("results") or []
        if not results:
            raise GenerationError("Moderation response contained no results.")

        first = results[0]
        raw_categories = first.get("categories") or {}
        raw_scores = first.get("category_scores") or {}
        return ModerationResult(
            flagged=bool(first.get("flagged", False)),
            categories={
                category: bool(raw_categories.get(category, False))
                for category in MODERATION_CATEGORIES
            },
            scores={
                category: float(raw_scores.get(category, 0.0))
                for category in MODERATION_CATEGORIES
            },
        )

    def clean_model_response(self, text: str) -> str:
        """Remove reasoning tags and Markdown code fences from a model response."""
        cleaned_text = text
        for tag_name in ("think", "thinking", "reasoning"):
            cleaned_text = re.sub(
                rf"<\s*{tag_name}\s*>.*?<\s*/\s*{tag_name}\s*>",
                "",
                cleaned_text,
                flags=re.DOTALL | re.IGNORECASE,
            )

        cleaned_text = re.sub(
            r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)\s*```",
            r"\1",
            cleaned_text,
            flags=re.DOTALL,
        )
        return cleaned_text.strip()


# Instantiate the service for other modules to import and use
llm_service = LLMService()
