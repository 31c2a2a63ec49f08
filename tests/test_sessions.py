from __future__ import annotations

from pathlib import Path

from agent_manager.sessions import forget_session, generate_session_name, register_session
from agent_manager.storage import HistoryLog, RegistryStore, ThrottleMarker


def stores(tmp_path: Path, clock):
    registry = RegistryStore(tmp_path / "sessions.json", clock=clock)
    history = HistoryLog(
        tmp_path / "history.jsonl",
        prune_marker=ThrottleMarker(tmp_path / ".prune_last", 3600, clock=clock),
        clock=clock,
    )
    return registry, history


def test_launch_with_explicit_task_records_history_immediately(tmp_path: Path, clock) -> None:
    registry, history = stores(tmp_path, clock)

    record = register_session(registry, history, "/tmp/myproject", "claude", task="Fix auth bug", branch="main")

    assert registry.get_field(record.name, "task") == "Fix auth bug"
    [entry] = history.entries()
    assert entry.task == "Fix auth bug"
    assert entry.directory == "/tmp/myproject"
    assert entry.agent_type == "claude"


def test_launch_without_task_leaves_history_empty(tmp_path: Path, clock) -> None:
    registry, history = stores(tmp_path, clock)

    record = register_session(registry, history, "/tmp/myproject", "aider")

    assert record.name.startswith("am-")
    assert registry.get_field(record.name, "agent_type") == "aider"
    assert history.entries() == []


def test_explicit_name_and_worktree(tmp_path: Path, clock) -> None:
    registry, history = stores(tmp_path, clock)

    register_session(
        registry,
        history,
        "/tmp/wt",
        "claude",
        name="am-fixed",
        worktree_path="/tmp/wt/.worktrees/feature",
    )

    assert registry.get_field("am-fixed", "worktree_path") == "/tmp/wt/.worktrees/feature"


def test_generate_session_name_shape(clock) -> None:
    first = generate_session_name("/tmp/a", clock=clock)
    clock.advance(seconds=1)
    second = generate_session_name("/tmp/a", clock=clock)

    assert first.startswith("am-") and len(first) == len("am-") + 6
    assert first != second
    assert generate_session_name("/tmp/a", "work-", clock=clock).startswith("work-")


def test_forget_session_keeps_history(tmp_path: Path, clock) -> None:
    registry, history = stores(tmp_path, clock)
    record = register_session(registry, history, "/tmp/a", "claude", task="Write docs")

    assert forget_session(registry, record.name) is True
    assert forget_session(registry, record.name) is False
    assert [entry.task for entry in history.query_by_directory("/tmp/a")] == ["Write docs"]


def test_history_outlives_session_until_retention(tmp_path: Path, clock) -> None:
    registry, history = stores(tmp_path, clock)
    record = register_session(registry, history, "/tmp/a", "claude", task="Old work")
    forget_session(registry, record.name)

    clock.advance(days=8)
    history.prune()

    assert history.query_by_directory("/tmp/a") == []
