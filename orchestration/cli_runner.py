# orchestration/cli_runner.py
"""Command-line runner for summarization and refinement sessions."""

from __future__ import annotations

import argparse
import asyncio
import os

import structlog
from rich.console import Console
from rich.table import Table

from config import settings
from core.exceptions import BookAIError
from orchestration.book_ai import BookAI
from processing.refinement import RefinementHistoryEngine
from storage.file_manager import FileManager
from utils.logging import setup_logging

logger = structlog.get_logger(__name__)


async def _summarize(book_ai: BookAI, args: argparse.Namespace) -> None:
    file_manager = FileManager(args.output)
    book_ai.load_file(args.book)
    summaries = await book_ai.get_section_summaries()
    await file_manager.save_json(settings.SECTION_SUMMARIES_FILE, summaries)

    summary = await book_ai.analyze(summaries)
    await file_manager.save_json(settings.COMPREHENSIVE_SUMMARY_FILE, summary)

    engine = book_ai.start_refinement(summary)
    await file_manager.save_history(settings.HISTORY_FILE, engine.export_history())


async def _load_engine(
    book_ai: BookAI, file_manager: FileManager, history_path: str
) -> RefinementHistoryEngine:
    engine = book_ai.start_refinement()
    engine.import_history(await file_manager.load_history(history_path))
    return engine


async def _refine(book_ai: BookAI, args: argparse.Namespace) -> None:
    file_manager = FileManager()
    engine = await _load_engine(book_ai, file_manager, args.history)
    updated = await engine.refine_section(args.section, args.instruction)
    await file_manager.save_history(args.history, engine.export_history())
    Console().print_json(data=updated.to_dict())


async def _revert(book_ai: BookAI, args: argparse.Namespace) -> None:
    file_manager = FileManager()
    engine = await _load_engine(book_ai, file_manager, args.history)
    if args.timestamp:
        engine.revert_to_timestamp(args.timestamp)
    else:
        engine.revert_last_change()
    await file_manager.save_history(args.history, engine.export_history())


async def _reset(book_ai: BookAI, args: argparse.Namespace) -> None:
    file_manager = FileManager()
    engine = await _load_engine(book_ai, file_manager, args.history)
    engine.reset()
    await file_manager.save_history(args.history, engine.export_history())


async def _show(book_ai: BookAI, args: argparse.Namespace) -> None:
    engine = await _load_engine(book_ai, FileManager(), args.history)
    table = Table(title="Refinement history")
    table.add_column("Timestamp")
    table.add_column("Section")
    table.add_column("Instruction")
    for entry in engine.get_history():
        table.add_row(entry.timestamp.isoformat(), entry.section.value, entry.instruction)
    Console().print(table)


_COMMANDS = {
    "summarize": _summarize,
    "refine": _refine,
    "revert": _revert,
    "reset": _reset,
    "show": _show,
}


async def _run(args: argparse.Namespace) -> None:
    book_ai = BookAI()
    try:
        await _COMMANDS[args.command](book_ai, args)
    finally:
        await book_ai.aclose()


def run(args: argparse.Namespace) -> int:
    """Run the requested command and return a process exit code."""
    setup_logging()
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Book AI shutting down due to KeyboardInterrupt...")
        return 130
    except (BookAIError, ValueError, OSError) as err:
        logger.error("Command failed", command=args.command, error=str(err))
        return 1
    return 0


def default_output_dir() -> str:
    return os.path.abspath(settings.BASE_OUTPUT_DIR)
