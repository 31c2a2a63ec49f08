from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from agent_manager.annotate import DirectoryAnnotator, format_age, format_time_ago
from agent_manager.storage import HistoryEntry, HistoryLog, ThrottleMarker


def make_history(tmp_path: Path, clock) -> HistoryLog:
    return HistoryLog(
        tmp_path / "history.jsonl",
        prune_marker=ThrottleMarker(tmp_path / ".prune_last", 3600, clock=clock),
        clock=clock,
    )


def test_annotate_lists_three_most_recent(tmp_path: Path, clock) -> None:
    history = make_history(tmp_path, clock)
    now = clock.now
    rows = [
        ("claude", "Oldest task", timedelta(days=3)),
        ("gemini", "Add tests for the whole parser module", timedelta(days=1)),
        ("claude", "Fix auth", timedelta(hours=2)),
        ("aider", "Tidy", timedelta(minutes=5)),
    ]
    for agent, task, age in rows:
        history.append_entry(HistoryEntry(directory="/repo", task=task, agent_type=agent, created_at=now - age))

    annotation = DirectoryAnnotator(history, clock=clock).annotate("/repo")

    assert annotation == " aider: Tidy (5m)|claude: Fix auth (2h)|gemini: Add tests for the whole par... (1d)"
    assert "Oldest" not in annotation


def test_annotate_without_history_is_empty(tmp_path: Path, clock) -> None:
    history = make_history(tmp_path, clock)

    assert DirectoryAnnotator(history, clock=clock).annotate("/repo") == ""


def test_annotate_is_read_only(tmp_path: Path, clock) -> None:
    history = make_history(tmp_path, clock)
    history.append("/repo", "Fix auth", "claude")
    before = (tmp_path / "history.jsonl").read_text(encoding="utf-8")

    DirectoryAnnotator(history, clock=clock).annotate("/repo")

    assert (tmp_path / "history.jsonl").read_text(encoding="utf-8") == before


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0m"), (59, "0m"), (600, "10m"), (3600, "1h"), (86399, "23h"), (86400, "1d"), (-5, "0m")],
)
def test_format_age(seconds: int, expected: str) -> None:
    assert format_age(seconds) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (-1, "just now"),
        (42, "42s ago"),
        (125, "2m ago"),
        (7200, "2h ago"),
        (7500, "2h 5m ago"),
        (3 * 86400, "3d ago"),
    ],
)
def test_format_time_ago(seconds: int, expected: str) -> None:
    assert format_time_ago(seconds) == expected


def test_annotate_accepts_trailing_slash_and_tilde(tmp_path: Path, clock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    history = make_history(tmp_path, clock)
    history.append(str(tmp_path / "repo"), "Fix auth", "claude")
    annotator = DirectoryAnnotator(history, clock=clock)

    assert annotator.annotate(f"{tmp_path}/repo/") == " claude: Fix auth (0m)"
    assert annotator.annotate("~/repo") == " claude: Fix auth (0m)"
