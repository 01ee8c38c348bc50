# main.py
"""CLI entry point for the Book AI analysis system."""

from __future__ import annotations

import argparse
import sys

from models import SummaryField
from orchestration.cli_runner import default_output_dir, run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize a book and refine its analysis."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    summarize = subparsers.add_parser("summarize", help="Summarize a markdown book")
    summarize.add_argument("book", help="Path to a markdown file split by '# ' headings")
    summarize.add_argument(
        "--output", default=default_output_dir(), help="Directory for result files"
    )

    refine = subparsers.add_parser("refine", help="Refine one field of the analysis")
    refine.add_argument("history", help="Path to an exported history JSON file")
    refine.add_argument(
        "--section",
        required=True,
        choices=[field.value for field in SummaryField],
    )
    refine.add_argument("--instruction", required=True)

    revert = subparsers.add_parser(
        "revert", help="Revert to a checkpoint or undo the last change"
    )
    revert.add_argument("history")
    revert.add_argument("--timestamp", default=None)

    reset = subparsers.add_parser("reset", help="Discard all refinements")
    reset.add_argument("history")

    show = subparsers.add_parser("show", help="List the refinement history")
    show.add_argument("history")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse command-line arguments and run the requested command."""
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
