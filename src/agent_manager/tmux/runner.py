"""Async tmux queries used to decide which registry entries are still alive."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

DEFAULT_PREFIX = "am-"


class TmuxRunnerError(RuntimeError):
    """Base class for tmux runner errors."""


class TmuxNotFoundError(TmuxRunnerError):
    """Raised when the tmux executable cannot be located."""


@dataclass(slots=True)
class TmuxExecutionResult:
    """Holds the outcome of a tmux invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class TmuxRunner:
    """Answer liveness questions about agent-manager tmux sessions."""

    def __init__(self, executable: Path | None = None, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._prefix = prefix

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise TmuxNotFoundError(f"tmux executable not found at {candidate}")

        binary = shutil.which("tmux")
        if binary is None:
            raise TmuxNotFoundError("tmux executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    @property
    def prefix(self) -> str:
        return self._prefix

    async def exists(self, session_name: str) -> bool:
        result = await self._invoke("has-session", "-t", f"={session_name}")
        return result.ok

    async def list_all(self) -> list[tuple[str, int]]:
        """Return ``(name, last_activity_epoch)`` for managed sessions, most recent first."""

        result = await self._invoke("list-sessions", "-F", "#{session_activity} #{session_name}")
        if not result.ok:
            # "no server running" is the normal state when nothing is launched.
            return []
        return parse_session_list(result.stdout, self._prefix)

    async def _invoke(self, *args: str) -> TmuxExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return TmuxExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


def parse_session_list(output: str, prefix: str) -> list[tuple[str, int]]:
    sessions: list[tuple[str, int]] = []
    for line in output.splitlines():
        activity_raw, _, name = line.strip().partition(" ")
        if not name.startswith(prefix):
            continue
        try:
            activity = int(activity_raw)
        except ValueError:
            continue
        sessions.append((name, activity))
    sessions.sort(key=lambda item: item[1], reverse=True)
    return sessions


class FakeTmuxRunner(TmuxRunner):
    """Test double backed by an in-memory session table."""

    def __init__(  # type: ignore[override]
        self,
        sessions: dict[str, int] | None = None,
        *,
        prefix: str = DEFAULT_PREFIX,
        failing: Iterable[str] | None = None,
    ) -> None:
        self._executable_path = Path("/tmp/fake-tmux")
        self._prefix = prefix
        self.sessions = dict(sessions or {})
        self.failing = set(failing or [])
        self.queries: list[str] = []

    async def exists(self, session_name: str) -> bool:  # type: ignore[override]
        self.queries.append(session_name)
        if session_name in self.failing:
            raise TmuxRunnerError(f"tmux query failed for {session_name}")
        return session_name in self.sessions

    async def list_all(self) -> list[tuple[str, int]]:  # type: ignore[override]
        lines = "\n".join(f"{activity} {name}" for name, activity in self.sessions.items())
        return parse_session_list(lines, self._prefix)


__all__ = [
    "DEFAULT_PREFIX",
    "FakeTmuxRunner",
    "TmuxExecutionResult",
    "TmuxNotFoundError",
    "TmuxRunner",
    "TmuxRunnerError",
    "parse_session_list",
]
