"""Append-only JSONL log of task assignments per directory."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator

from pydantic import ValidationError

from .files import append_line, atomic_write_text
from .markers import ThrottleMarker
from .models import HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)
DEFAULT_PRUNE_INTERVAL = 3600


def normalize_directory(path: str) -> str:
    """Absolute, user-expanded form used both when recording and when querying."""

    return os.path.abspath(os.path.expanduser(path))


class HistoryLog:
    """Session history that outlives the registry.

    Appends are a single line write. Old entries are dropped by :meth:`prune`,
    which runs at most once per prune-marker window after an append.
    """

    def __init__(
        self,
        path: Path,
        *,
        retention: timedelta = DEFAULT_RETENTION,
        prune_marker: ThrottleMarker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._retention = retention
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._prune_marker = prune_marker or ThrottleMarker(
            self._path.parent / ".prune_last", DEFAULT_PRUNE_INTERVAL, clock=self._clock
        )

    @property
    def path(self) -> Path:
        return self._path

    def append(self, directory: str, task: str, agent_type: str = "", branch: str = "") -> HistoryEntry | None:
        if not task:
            return None
        entry = HistoryEntry(
            directory=directory,
            task=task,
            agent_type=agent_type,
            branch=branch,
            created_at=self._clock().replace(microsecond=0),
        )
        return self.append_entry(entry)

    def append_entry(self, entry: HistoryEntry) -> HistoryEntry | None:
        if not entry.task:
            return None

        append_line(self._path, entry.model_dump_json())

        if self._prune_marker.acquire():
            self.prune()
        return entry

    def _iter_lines(self) -> Iterator[tuple[str, HistoryEntry | None]]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                lines = handle.readlines()
        except FileNotFoundError:
            return
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                yield stripped, HistoryEntry.model_validate(json.loads(stripped))
            except (json.JSONDecodeError, ValidationError):
                yield stripped, None

    def entries(self) -> list[HistoryEntry]:
        return [entry for _, entry in self._iter_lines() if entry is not None]

    def prune(self) -> int:
        """Drop entries older than the retention window and rewrite the log.

        Unparseable lines are dropped too. Returns the number of lines removed.
        """

        if not self._path.exists():
            return 0

        cutoff = self._clock() - self._retention
        kept: list[str] = []
        removed = 0
        for line, entry in self._iter_lines():
            if entry is None or entry.created_at < cutoff:
                removed += 1
                continue
            kept.append(line)

        atomic_write_text(self._path, "".join(f"{line}\n" for line in kept))
        if removed:
            logger.info("Pruned history entries", extra={"removed": removed, "kept": len(kept)})
        return removed

    def query_by_directory(self, path: str, *, limit: int | None = None) -> list[HistoryEntry]:
        """Entries recorded for ``path``, newest first."""

        wanted = normalize_directory(path)
        matches = [entry for entry in self.entries() if normalize_directory(entry.directory) == wanted]
        # Ties on created_at resolve to the most recently written line.
        matches = sorted(reversed(matches), key=lambda entry: entry.created_at, reverse=True)
        return matches[:limit] if limit is not None else matches


__all__ = ["DEFAULT_PRUNE_INTERVAL", "DEFAULT_RETENTION", "HistoryLog", "normalize_directory"]
