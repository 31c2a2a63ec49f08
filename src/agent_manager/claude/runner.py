"""Async runner for one-shot Claude CLI prompts."""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from ..titling.text import TITLE_PROMPT

DEFAULT_TIMEOUT = 30.0

# Interpreter and virtualenv settings of this process must not leak into the
# CLI, and CLAUDECODE (set inside agent sessions) makes it refuse to start.
_STRIPPED_ENV_VARS = frozenset(
    {"PYTHONHOME", "PYTHONPATH", "VIRTUAL_ENV", "PIP_RESPECT_VIRTUALENV", "CLAUDECODE"}
)


class ClaudeRunnerError(RuntimeError):
    """Base class for Claude runner errors."""


class ClaudeNotFoundError(ClaudeRunnerError):
    """Raised when the Claude CLI executable cannot be located."""


class ClaudeTimeoutError(ClaudeRunnerError):
    """Raised when a Claude invocation exceeds its timeout."""


def child_environment(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment for a ``claude -p`` child spawned from inside an agent session."""

    env = {key: value for key, value in os.environ.items() if key not in _STRIPPED_ENV_VARS}
    env.update(overrides or {})
    return env


@dataclass(slots=True)
class ClaudeExecutionResult:
    """Holds the outcome of a Claude CLI invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ClaudeRunner:
    """Execute ``claude -p`` prompts asynchronously with a hard timeout."""

    def __init__(
        self,
        executable: Path | None = None,
        *,
        model: str = "haiku",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._model = model
        self._timeout = timeout

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise ClaudeNotFoundError(f"Claude executable not found at {candidate}")

        binary = shutil.which("claude")
        if binary is None:
            raise ClaudeNotFoundError("Claude CLI executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    @property
    def timeout(self) -> float:
        return self._timeout

    async def prompt(self, text: str) -> ClaudeExecutionResult:
        return await self._invoke("-p", "--model", self._model, text)

    async def generate_title(self, text: str) -> str:
        """Ask the model for a short title. The output is returned unvalidated."""

        result = await self.prompt(TITLE_PROMPT.format(message=text))
        if not result.ok:
            raise ClaudeRunnerError(
                f"claude exited with {result.returncode}: {result.stderr.strip()[:200]}"
            )
        return result.stdout

    async def _invoke(self, *args: str) -> ClaudeExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=child_environment(),
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ClaudeTimeoutError(f"claude did not answer within {self._timeout:g}s") from exc
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return ClaudeExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeClaudeRunner(ClaudeRunner):
    """Test double that simulates Claude CLI responses."""

    def __init__(self, responses: Iterable[ClaudeExecutionResult] | None = None) -> None:  # type: ignore[override]
        self._responses = list(responses or [])
        self._invocations: list[tuple[str, ...]] = []
        self._executable_path = Path("/tmp/fake-claude")
        self._model = "haiku"
        self._timeout = DEFAULT_TIMEOUT

    async def _invoke(self, *args: str) -> ClaudeExecutionResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        if self._responses:
            return self._responses.pop(0)
        return ClaudeExecutionResult(args=tuple(args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "ClaudeExecutionResult",
    "ClaudeNotFoundError",
    "ClaudeRunner",
    "ClaudeRunnerError",
    "ClaudeTimeoutError",
    "FakeClaudeRunner",
    "child_environment",
]
