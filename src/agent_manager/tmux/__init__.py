"""tmux liveness queries."""

from .runner import TmuxExecutionResult, TmuxNotFoundError, TmuxRunner, TmuxRunnerError

__all__ = [
    "TmuxExecutionResult",
    "TmuxNotFoundError",
    "TmuxRunner",
    "TmuxRunnerError",
]
