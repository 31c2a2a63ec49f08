"""Persisted "last run" timestamps used to rate-limit periodic passes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .files import atomic_write_text

logger = logging.getLogger(__name__)


class ThrottleMarker:
    """A single epoch-seconds value on disk guarding an expensive operation.

    ``acquire`` writes the marker before the guarded pass runs, so a pass that
    crashes half way still counts as a run for the next window.
    """

    def __init__(
        self,
        path: Path,
        interval: float,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._interval = float(interval)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def interval(self) -> float:
        return self._interval

    def _now(self) -> float:
        return self._clock().timestamp()

    def last_run(self) -> float | None:
        try:
            raw = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Unreadable throttle marker", extra={"path": str(self._path), "error": str(exc)})
            return None
        try:
            return float(raw)
        except ValueError:
            return None

    def seconds_since_last_run(self) -> float | None:
        last = self.last_run()
        if last is None:
            return None
        return self._now() - last

    def should_run(self, force: bool = False) -> bool:
        if force:
            return True
        elapsed = self.seconds_since_last_run()
        return elapsed is None or elapsed >= self._interval

    def touch(self) -> None:
        atomic_write_text(self._path, f"{int(self._now())}\n")

    def acquire(self, force: bool = False) -> bool:
        """Return True and stamp the marker when the window has passed."""

        if not self.should_run(force):
            return False
        self.touch()
        return True


__all__ = ["ThrottleMarker"]
