# tests/test_cli.py
import json

import pytest

import main
from models import ComprehensiveSummary, ExportedHistory, RefinementEntry, SummaryField
from orchestration import cli_runner


def _write_history(path, with_entry: bool = True) -> None:
    initial = ComprehensiveSummary(summary="Initial.", writing_style="w", marketing_copy="m")
    current = initial.model_copy(update={"summary": "Edited."})
    history = []
    if with_entry:
        history.append(
            RefinementEntry(
                timestamp="2024-05-01T12:00:00Z",
                section=SummaryField.SUMMARY,
                instruction="edit",
                previous_content="Initial.",
                updated_content="Edited.",
            )
        )
    exported = ExportedHistory(
        version="1.0", initial_summary=initial, history=history, current_summary=current
    )
    path.write_text(json.dumps(exported.to_dict()), encoding="utf-8")


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_runner, "setup_logging", lambda: None)


def test_parser_accepts_refine_arguments():
    args = main.build_parser().parse_args(
        ["refine", "h.json", "--section", "marketingCopy", "--instruction", "Shorter"]
    )
    assert args.command == "refine"
    assert args.section == "marketingCopy"
    assert args.instruction == "Shorter"


def test_parser_rejects_unknown_section():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(
            ["refine", "h.json", "--section", "title", "--instruction", "x"]
        )


def test_reset_command_rewrites_history(tmp_path):
    path = tmp_path / "history.json"
    _write_history(path)

    assert main.main(["reset", str(path)]) == 0

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["history"] == []
    assert data["currentSummary"]["summary"] == "Initial."


def test_revert_without_history_fails(tmp_path):
    path = tmp_path / "history.json"
    _write_history(path, with_entry=False)

    assert main.main(["revert", str(path)]) == 1


def test_missing_history_file_fails(tmp_path):
    assert main.main(["show", str(tmp_path / "missing.json")]) == 1
