"""Human-readable summaries of what a directory was recently used for."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from .storage import HistoryLog
from .titling.text import truncate

MAX_ANNOTATED_ENTRIES = 3
TASK_DISPLAY_LENGTH = 30


def format_age(seconds: float) -> str:
    """Compact age used in directory annotations: ``5m``, ``3h``, ``2d``."""

    seconds = max(int(seconds), 0)
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def format_time_ago(seconds: float) -> str:
    seconds = int(seconds)
    if seconds < 0:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        hours, mins = seconds // 3600, (seconds % 3600) // 60
        return f"{hours}h {mins}m ago" if mins else f"{hours}h ago"
    return f"{seconds // 86400}d ago"


class DirectoryAnnotator:
    """Read-only projection over the history log for the directory picker."""

    def __init__(self, history: HistoryLog, *, clock: Callable[[], datetime] | None = None) -> None:
        self._history = history
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def annotate(self, path: str) -> str:
        """Return e.g. ``' claude: Fix auth (2h)|gemini: Add tests (1d)'`` or ``""``."""

        entries = self._history.query_by_directory(path, limit=MAX_ANNOTATED_ENTRIES)
        if not entries:
            return ""

        now = self._clock()
        parts = [
            f"{entry.agent_type}: {truncate(entry.task, TASK_DISPLAY_LENGTH)} "
            f"({format_age((now - entry.created_at).total_seconds())})"
            for entry in entries
        ]
        return " " + "|".join(parts)


__all__ = ["DirectoryAnnotator", "format_age", "format_time_ago"]
