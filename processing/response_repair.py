# processing/response_repair.py
"""Normalize loosely structured model responses into typed field values.

Parsing happens in two stages:

1. ``parse_loose_json`` tries an ordered list of strategies, each a pure
   function ``(text, field) -> parsed value`` that returns a sentinel on a
   miss. The first strategy that yields a value wins.
2. ``repair_structure`` unwraps the parsed value towards the content of the
   target field (``{"field": ...}``, double nesting, single-key objects).

``parse_field_response`` runs both stages and classifies the outcome as a
:class:`RepairedValue`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

import structlog

from core.exceptions import ResponseParseError

logger = structlog.get_logger(__name__)

_CODE_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?|\n?```")
_MISSING = object()

RepairStrategy = Callable[[str, str], Any]
ValueKind = Literal["string", "string_list", "object"]


@dataclass(frozen=True)
class RepairedValue:
    """Tagged result of parsing: a string, a list of strings or an object."""

    kind: ValueKind
    value: str | list[str] | dict[str, Any]

    @classmethod
    def classify(cls, value: Any, field: str) -> RepairedValue:
        if isinstance(value, str):
            return cls("string", value)
        if isinstance(value, list):
            return cls(
                "string_list",
                [item if isinstance(item, str) else _to_text(item) for item in value],
            )
        if isinstance(value, dict):
            return cls("object", value)
        if value is None:
            raise ResponseParseError(field, "response resolved to null")
        return cls("string", _to_text(value))


def _to_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _loads(text: str) -> Any:
    """Parse JSON, returning ``_MISSING`` when the text is not valid."""
    try:
        return json.loads(text, strict=False)
    except (json.JSONDecodeError, TypeError):
        return _MISSING


def strip_code_fences(text: str) -> str:
    """Remove Markdown code-fence delimiters and surrounding whitespace."""
    return _CODE_FENCE_RE.sub("", text).strip()


def parse_direct(text: str, field: str) -> Any:
    """The response is already valid JSON."""
    return _loads(text)


def _is_quoted(cleaned: str) -> bool:
    return len(cleaned) >= 2 and cleaned.startswith('"') and cleaned.endswith('"')


def parse_quoted_string(text: str, field: str) -> Any:
    """A bare JSON string literal, possibly inside a code fence."""
    cleaned = strip_code_fences(text)
    if not _is_quoted(cleaned):
        return _MISSING
    return _loads(f'{{"{field}":{cleaned}}}')


def parse_bare_text(text: str, field: str) -> Any:
    """Plain prose that is not JSON at all."""
    cleaned = strip_code_fences(text)
    if not cleaned or cleaned.startswith(("{", "[")) or _is_quoted(cleaned):
        return _MISSING
    return _loads(f'{{"{field}":{json.dumps(cleaned, ensure_ascii=False)}}}')


def parse_bare_array(text: str, field: str) -> Any:
    """A JSON array not wrapped in the field key."""
    cleaned = strip_code_fences(text)
    if not (cleaned.startswith("[") and cleaned.endswith("]")):
        return _MISSING
    return _loads(f'{{"{field}":{cleaned}}}')


def parse_cleaned(text: str, field: str) -> Any:
    """Any JSON value left once code fences are gone."""
    return _loads(strip_code_fences(text))


REPAIR_STRATEGIES: tuple[RepairStrategy, ...] = (
    parse_direct,
    parse_quoted_string,
    parse_bare_text,
    parse_bare_array,
    parse_cleaned,
)


def parse_loose_json(text: str, field: str) -> Any:
    """Parse ``text`` with the first repair strategy that succeeds."""
    for strategy in REPAIR_STRATEGIES:
        parsed = strategy(text, field)
        if parsed is not _MISSING:
            if strategy is not parse_direct:
                logger.debug(
                    "Response repaired before parsing",
                    field=field,
                    strategy=strategy.__name__,
                )
            return parsed
    logger.warning(
        "No repair strategy could parse the response",
        field=field,
        response_preview=text[:200],
    )
    raise ResponseParseError(field, "response is not parseable JSON after repair")


def repair_structure(value: Any, field: str) -> Any:
    """Unwrap a parsed response towards the value of ``field``."""
    if isinstance(value, (str, list)) or not isinstance(value, dict):
        return value

    if field in value:
        inner = value[field]
        if isinstance(inner, dict) and field in inner:
            return inner[field]
        return inner

    if len(value) == 1:
        return next(iter(value.values()))

    logger.warning(
        "Could not repair response structure, returning object unchanged",
        field=field,
        keys=sorted(value),
    )
    return value


def parse_field_response(text: str, field: str) -> RepairedValue:
    """Turn a raw model response into the repaired value for ``field``."""
    parsed = parse_loose_json(text, field)
    return RepairedValue.classify(repair_structure(parsed, field), field)
