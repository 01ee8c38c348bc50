# core/exceptions.py
"""Error taxonomy shared by the summarization and refinement components."""

from __future__ import annotations


class BookAIError(Exception):
    """Base class for all Book AI errors."""


class ConfigurationError(BookAIError):
    """Required credentials or settings are missing at construction time."""


class GenerationError(BookAIError):
    """The text generation or moderation service failed or returned a failure outcome."""


class SectionSummarizationError(GenerationError):
    """A single section failed and aborted the whole pipeline."""

    def __init__(self, index: int, title: str, reason: str) -> None:
        self.index = index
        self.title = title
        self.reason = reason
        super().__init__(f"Failed to summarize section {index} ('{title}'): {reason}")


class ResponseParseError(BookAIError):
    """Every repair strategy failed to turn a response into a usable value."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Failed to parse response for '{field}': {reason}")


class StateError(BookAIError):
    """An operation was invoked before the state it needs exists."""


class CheckpointNotFoundError(StateError):
    """No refinement log entry carries the requested timestamp."""

    def __init__(self, timestamp: str) -> None:
        self.timestamp = timestamp
        super().__init__(f"Timestamp not found in history: {timestamp}")


class HistoryImportError(BookAIError):
    """An exported history is incompatible or structurally incomplete."""
