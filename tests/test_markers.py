from __future__ import annotations

from pathlib import Path

from agent_manager.storage import ThrottleMarker


def test_first_acquire_runs_and_stamps(tmp_path: Path, clock) -> None:
    marker = ThrottleMarker(tmp_path / ".gc_last", 60, clock=clock)

    assert marker.last_run() is None
    assert marker.acquire() is True
    assert marker.last_run() == clock.now.timestamp()


def test_acquire_within_window_is_refused(tmp_path: Path, clock) -> None:
    marker = ThrottleMarker(tmp_path / ".gc_last", 60, clock=clock)
    marker.acquire()

    clock.advance(seconds=59)
    assert marker.acquire() is False

    clock.advance(seconds=1)
    assert marker.acquire() is True


def test_force_bypasses_window(tmp_path: Path, clock) -> None:
    marker = ThrottleMarker(tmp_path / ".gc_last", 60, clock=clock)
    marker.acquire()

    assert marker.acquire(force=True) is True


def test_corrupt_marker_counts_as_never_run(tmp_path: Path, clock) -> None:
    path = tmp_path / ".title_scan_last"
    path.write_text("garbage", encoding="utf-8")
    marker = ThrottleMarker(path, 60, clock=clock)

    assert marker.last_run() is None
    assert marker.should_run() is True


def test_markers_are_independent(tmp_path: Path, clock) -> None:
    gc_marker = ThrottleMarker(tmp_path / ".gc_last", 60, clock=clock)
    scan_marker = ThrottleMarker(tmp_path / ".title_scan_last", 60, clock=clock)

    gc_marker.acquire()

    assert scan_marker.acquire() is True
