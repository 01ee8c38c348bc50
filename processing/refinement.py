# processing/refinement.py
"""Versioned, instruction-driven editing of a :class:`ComprehensiveSummary`.

The engine owns three pieces of state: the initial document, the current
document and an append-only log of :class:`RefinementEntry` records. Every
operation either commits a complete new state or raises without touching
it. Log timestamps are strictly increasing and unique; checkpoints are
addressed by them.

The engine assumes a single writer. Concurrent ``refine_section`` calls on
one instance are rejected when they would overwrite each other's result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from config import settings
from core.exceptions import (
    CheckpointNotFoundError,
    GenerationError,
    HistoryImportError,
    ResponseParseError,
    StateError,
)
from core.generation import TextGenerationPort
from models import (
    FIELD_SHAPES,
    ComprehensiveSummary,
    ExportedHistory,
    FieldShape,
    FieldValue,
    RefinementEntry,
    SummaryField,
)
from processing.response_repair import RepairedValue, parse_field_response
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)

_TIMESTAMP_ADAPTER = TypeAdapter(datetime)
_REQUIRED_IMPORT_FIELDS = (
    ("initialSummary", "initial_summary"),
    ("history", "history"),
    ("currentSummary", "current_summary"),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _tail(entries: Sequence[RefinementEntry], count: int) -> list[RefinementEntry]:
    if count <= 0:
        return []
    return list(entries[-count:])


def coerce_field_value(field: SummaryField, repaired: RepairedValue) -> FieldValue:
    """Fit a repaired response to the value type of ``field``."""
    if repaired.kind == "object":
        raise ResponseParseError(
            field.value,
            f"response is an object without a usable value (keys: {sorted(repaired.value)})",
        )

    shape = FIELD_SHAPES[field]
    if shape is FieldShape.TEXT:
        if repaired.kind == "string_list":
            logger.warning("List returned for a text field; joining items", field=field.value)
            return "\n\n".join(repaired.value)
        return repaired.value

    if repaired.kind == "string":
        logger.warning("Text returned for a list field; wrapping it", field=field.value)
        return [repaired.value]
    return list(repaired.value)


class RefinementHistoryEngine:
    """Apply natural-language edits to single fields and keep a replayable log."""

    def __init__(
        self,
        generator: TextGenerationPort,
        summary: ComprehensiveSummary | None = None,
        version: str = settings.HISTORY_VERSION,
        same_field_history: int = settings.REFINEMENT_SAME_FIELD_HISTORY,
        other_field_history: int = settings.REFINEMENT_OTHER_FIELD_HISTORY,
        clock: Callable[[], datetime] | None = None,
        log: Any = None,
    ) -> None:
        self._generator = generator
        self.version = version
        self.same_field_history = same_field_history
        self.other_field_history = other_field_history
        self._clock = clock or _utc_now
        self._log = log or logger.bind(component="RefinementHistoryEngine")

        self._initial: ComprehensiveSummary | None = None
        self._current: ComprehensiveSummary | None = None
        self._history: list[RefinementEntry] = []
        if summary is not None:
            self.load(summary)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    def load(self, summary: ComprehensiveSummary) -> ComprehensiveSummary:
        """Seed the engine with a new initial document and an empty log."""
        self._initial = summary.model_copy(deep=True)
        self._current = summary.model_copy(deep=True)
        self._history = []
        self._log.info("Summary loaded for refinement")
        return self.get_summary()

    def _require_current(self) -> ComprehensiveSummary:
        if self._current is None or self._initial is None:
            raise StateError("No summary loaded. Call load() or import_history() first.")
        return self._current

    def get_summary(self) -> ComprehensiveSummary:
        return self._require_current().model_copy(deep=True)

    def get_initial_summary(self) -> ComprehensiveSummary:
        self._require_current()
        return self._initial.model_copy(deep=True)

    def get_history(self) -> list[RefinementEntry]:
        return [entry.model_copy(deep=True) for entry in self._history]

    # ------------------------------------------------------------------
    # Refinement
    # ------------------------------------------------------------------
    def relevant_history(self, section: SummaryField) -> list[RefinementEntry]:
        """Recent entries for ``section`` plus recent entries for other fields."""
        same = _tail(
            [entry for entry in self._history if entry.section == section],
            self.same_field_history,
        )
        other = _tail(
            [entry for entry in self._history if entry.section != section],
            self.other_field_history,
        )
        return sorted(same + other, key=lambda entry: entry.timestamp)

    def build_prompt(self, section: SummaryField, instruction: str) -> str:
        current = self._require_current()
        return render_prompt(
            "refine_section.j2",
            {
                "field": section.value,
                "is_list": FIELD_SHAPES[section] is FieldShape.TEXT_LIST,
                "current_content": current.get_field(section),
                "history": self.relevant_history(section),
                "instruction": instruction,
                "document": current,
            },
        )

    def _next_timestamp(self) -> datetime:
        timestamp = _as_utc(self._clock())
        if self._history and timestamp <= self._history[-1].timestamp:
            timestamp = self._history[-1].timestamp + timedelta(microseconds=1)
        return timestamp

    async def refine_section(
        self, section: SummaryField | str, instruction: str
    ) -> ComprehensiveSummary:
        """Rewrite one field according to ``instruction`` and log the change."""
        field = SummaryField(section)
        if not instruction or not instruction.strip():
            raise ValueError("instruction must not be empty")

        current = self._require_current()
        history_length = len(self._history)
        previous_content = current.get_field(field)
        self._log.info("Refining section", section=field.value, instruction=instruction)

        result = await self._generator.generate(
            self.build_prompt(field, instruction),
            str,
            system_prompt=render_prompt("refine_section_system.j2", {}),
        )
        if not result.success or result.data is None:
            self._log.error("Refinement failed", section=field.value, reason=result.message)
            raise GenerationError(
                f"Failed to refine '{field.value}': {result.message}"
            )

        updated_content = coerce_field_value(
            field, parse_field_response(result.data, field.value)
        )

        if self._current is not current or len(self._history) != history_length:
            raise StateError(
                "Engine state changed while refining; refine calls must not overlap."
            )

        entry = RefinementEntry(
            timestamp=self._next_timestamp(),
            section=field,
            instruction=instruction,
            previous_content=previous_content,
            updated_content=updated_content,
        )
        self._current = current.with_field(field, updated_content)
        self._history.append(entry)
        self._log.info(
            "Section refined",
            section=field.value,
            timestamp=entry.timestamp.isoformat(),
            history_length=len(self._history),
        )
        return self.get_summary()

    # ------------------------------------------------------------------
    # Revert / reset
    # ------------------------------------------------------------------
    def revert_to_timestamp(self, timestamp: datetime | str) -> ComprehensiveSummary:
        """Truncate the log after ``timestamp`` and replay it from the initial document."""
        self._require_current()
        try:
            target = _as_utc(_TIMESTAMP_ADAPTER.validate_python(timestamp))
        except ValidationError as exc:
            raise CheckpointNotFoundError(str(timestamp)) from exc

        index = next(
            (i for i, entry in enumerate(self._history) if entry.timestamp == target),
            None,
        )
        if index is None:
            raise CheckpointNotFoundError(str(timestamp))

        kept = self._history[: index + 1]
        rebuilt = self._initial.model_copy(deep=True)
        for entry in kept:
            rebuilt = rebuilt.with_field(entry.section, entry.updated_content)

        self._history = kept
        self._current = rebuilt
        self._log.info(
            "Reverted to checkpoint",
            timestamp=target.isoformat(),
            history_length=len(kept),
        )
        return self.get_summary()

    def revert_last_change(self) -> ComprehensiveSummary:
        """Restore the previous content of the most recently edited field."""
        current = self._require_current()
        if not self._history:
            raise StateError("No changes to revert")

        last_entry = self._history[-1]
        self._current = current.with_field(last_entry.section, last_entry.previous_content)
        self._history = self._history[:-1]
        self._log.info("Reverted last change", section=last_entry.section.value)
        return self.get_summary()

    def reset(self) -> ComprehensiveSummary:
        """Return to the initial document and clear the log."""
        self._require_current()
        self._current = self._initial.model_copy(deep=True)
        self._history = []
        self._log.info("Refinement history reset")
        return self.get_summary()

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------
    def export_history(self) -> ExportedHistory:
        current = self._require_current()
        return ExportedHistory(
            version=self.version,
            timestamp=_as_utc(self._clock()),
            initial_summary=self._initial.model_copy(deep=True),
            history=self.get_history(),
            current_summary=current.model_copy(deep=True),
        )

    def _validate_snapshot(
        self, snapshot: ExportedHistory | Mapping[str, Any]
    ) -> ExportedHistory:
        if isinstance(snapshot, ExportedHistory):
            version = snapshot.version
        elif isinstance(snapshot, Mapping):
            version = snapshot.get("version")
        else:
            raise HistoryImportError(
                f"Invalid history format: unsupported type {type(snapshot).__name__}"
            )

        if not version or version != self.version:
            raise HistoryImportError(
                f"Incompatible history version: {version!r} (expected {self.version!r})"
            )

        if isinstance(snapshot, ExportedHistory):
            exported = snapshot.model_copy(deep=True)
        else:
            for camel, snake in _REQUIRED_IMPORT_FIELDS:
                if snapshot.get(camel) is None and snapshot.get(snake) is None:
                    raise HistoryImportError(
                        f"Invalid history format: missing '{camel}'"
                    )
            try:
                exported = ExportedHistory.model_validate(dict(snapshot))
            except ValidationError as exc:
                raise HistoryImportError(f"Invalid history format: {exc}") from exc

        timestamps = [entry.timestamp for entry in exported.history]
        if any(later <= earlier for earlier, later in zip(timestamps, timestamps[1:])):
            raise HistoryImportError(
                "Invalid history format: timestamps must be strictly increasing"
            )
        return exported

    def import_history(
        self, snapshot: ExportedHistory | Mapping[str, Any]
    ) -> ComprehensiveSummary:
        """Replace all engine state with a previously exported snapshot."""
        exported = self._validate_snapshot(snapshot)
        self._initial = exported.initial_summary
        self._history = list(exported.history)
        self._current = exported.current_summary
        self._log.info("Imported history", entries=len(self._history))
        return self.get_summary()
