from __future__ import annotations

import argparse
import importlib.util
import json
from datetime import timedelta
from pathlib import Path

import pytest

from agent_manager.config import AgentManagerSettings
from agent_manager.manager import create_manager
from agent_manager.storage import HistoryEntry, ThrottleMarker
from agent_manager.tmux.runner import FakeTmuxRunner


class StubTranscripts:
    def __init__(self) -> None:
        self.messages: dict[str, str] = {}

    def first_user_message(self, directory: str) -> str | None:
        return self.messages.get(directory)


class InstantGenerator:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls = 0

    async def generate_title(self, text: str) -> str:
        self.calls += 1
        return self.reply


def load_diag():
    module_path = Path(__file__).resolve().parents[1] / "scripts" / "am_diag.py"
    spec = importlib.util.spec_from_file_location("am_diag_test_module", module_path)
    assert spec and spec.loader
    diag = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(diag)
    return diag


@pytest.fixture
def diag(tmp_path: Path, clock, monkeypatch: pytest.MonkeyPatch):
    settings = AgentManagerSettings()
    settings.am_dir = tmp_path / "am"
    transcripts = StubTranscripts()
    generator = InstantGenerator("Fix login form")
    manager = create_manager(
        settings,
        oracle=FakeTmuxRunner({"am-live": 0}),
        generator=generator,
        transcripts=transcripts,
        clock=clock,
    )
    module = load_diag()
    monkeypatch.setattr(module, "load_manager", lambda: manager)
    module.manager = manager
    module.transcripts = transcripts
    module.generator = generator
    return module


def test_gc_reports_removed_count(diag, capsys) -> None:
    diag.manager.registry.add("am-live", "/a")
    diag.manager.registry.add("am-dead", "/b")

    diag.main(["gc", "--force"])

    assert json.loads(capsys.readouterr().out) == {"removed": 1}
    assert diag.manager.registry.list_keys() == ["am-live"]


def test_history_for_directory(diag, clock, capsys) -> None:
    diag.manager.history.append("/repo", "First", "claude")
    clock.advance(minutes=1)
    diag.manager.history.append("/repo", "Second", "gemini")
    diag.manager.history.append("/elsewhere", "Other", "claude")

    diag.cmd_history(argparse.Namespace(directory="/repo", limit=None))

    payload = json.loads(capsys.readouterr().out)
    assert [entry["task"] for entry in payload] == ["Second", "First"]


def test_prune_drops_expired_entries(diag, clock, capsys) -> None:
    ThrottleMarker(diag.manager.settings.prune_marker_path, 3600, clock=clock).touch()
    diag.manager.history.append_entry(
        HistoryEntry(directory="/repo", task="Stale", created_at=clock.now - timedelta(days=8))
    )
    diag.manager.history.append("/repo", "Fresh", "claude")

    diag.cmd_prune(argparse.Namespace())

    assert json.loads(capsys.readouterr().out) == {"removed": 1}
    assert [entry.task for entry in diag.manager.history.entries()] == ["Fresh"]


def test_annotate_prints_summary(diag, capsys) -> None:
    diag.manager.history.append("/repo", "Fix auth", "claude")

    diag.main(["annotate", "/repo"])

    assert capsys.readouterr().out == " claude: Fix auth (0m)\n"


def test_sessions_lists_registry_records(diag, capsys) -> None:
    diag.manager.registry.add("am-live", "/a", "main", "claude", "Ship")

    diag.main(["sessions"])

    [record] = json.loads(capsys.readouterr().out)
    assert record["name"] == "am-live"
    assert record["task"] == "Ship"


def test_no_command_prints_help(diag, capsys) -> None:
    diag.main([])

    assert "agent-manager diagnostics" in capsys.readouterr().out


def test_scan_lets_upgrades_finish_before_exit(diag, capsys) -> None:
    diag.manager.registry.add("am-live", "/repo", "main", "claude")
    diag.transcripts.messages["/repo"] = "please fix the login form. it breaks on submit"

    diag.main(["scan", "--force"])

    report = json.loads(capsys.readouterr().out)
    assert report["titled"] == 1 and report["upgrades"] == 1
    assert diag.generator.calls == 1
    assert diag.manager.registry.get_field("am-live", "task") == "Fix login form"
    assert [entry.task for entry in diag.manager.history.query_by_directory("/repo")] == [
        "Fix login form",
        "please fix the login form",
    ]


def test_scan_wait_zero_keeps_fallback(diag, capsys) -> None:
    diag.manager.registry.add("am-live", "/repo")
    diag.transcripts.messages["/repo"] = "please fix the login form. it breaks on submit"

    diag.main(["scan", "--force", "--wait", "0"])

    assert json.loads(capsys.readouterr().out)["upgrades"] == 1
    assert diag.generator.calls == 0
    assert diag.manager.registry.get_field("am-live", "task") == "please fix the login form"


def test_live_sessions_print_then_upgrade(diag, capsys) -> None:
    diag.manager.registry.add("am-live", "/repo", "main", "claude")
    diag.transcripts.messages["/repo"] = "please fix the login form. it breaks on submit"

    diag.main(["sessions", "--live", "--json"])

    [session] = json.loads(capsys.readouterr().out)
    assert session["name"] == "am-live"
    assert session["task"] in ("please fix the login form", "Fix login form")
    assert diag.generator.calls == 1
    assert diag.manager.registry.get_field("am-live", "task") == "Fix login form"


def test_history_limit_zero_is_empty(diag, capsys) -> None:
    diag.manager.history.append("/repo", "Fix auth", "claude")

    diag.main(["history", "--limit", "0"])
    assert json.loads(capsys.readouterr().out) == []

    diag.main(["history", "--directory", "/repo/", "--limit", "0"])
    assert json.loads(capsys.readouterr().out) == []
