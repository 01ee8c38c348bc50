# storage/file_manager.py
"""Asynchronous persistence of analysis results and refinement histories."""

from __future__ import annotations

import asyncio
import json
import os

import structlog
from pydantic import BaseModel

from core.exceptions import HistoryImportError
from models import ExportedHistory

logger = structlog.get_logger(__name__)


class FileManager:
    """Handle reading and writing JSON artifacts off the event loop."""

    def __init__(self, base_dir: str | None = None) -> None:
        self.base_dir = base_dir

    def resolve(self, file_path: str) -> str:
        if self.base_dir and not os.path.isabs(file_path):
            return os.path.join(self.base_dir, file_path)
        return file_path

    async def save_json(self, file_path: str, model: BaseModel) -> str:
        """Write ``model`` as camelCase JSON and return the path written."""
        path = self.resolve(file_path)
        content_str = json.dumps(
            model.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False
        )
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_text_sync, path, content_str)
        logger.info("Saved JSON artifact", path=path)
        return path

    async def save_history(self, file_path: str, exported: ExportedHistory) -> str:
        return await self.save_json(file_path, exported)

    async def load_history(self, file_path: str) -> dict:
        """Read an exported history file as raw JSON for the engine to validate."""
        path = self.resolve(file_path)
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(None, self._read_text_sync, path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HistoryImportError(f"History file is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise HistoryImportError("History file must contain a JSON object.")
        return data

    def _write_text_sync(self, file_path: str, content_str: str) -> None:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content_str)

    def _read_text_sync(self, file_path: str) -> str:
        with open(file_path, encoding="utf-8") as f:
            return f.read()
