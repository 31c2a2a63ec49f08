"""Claude CLI integration: title generation and transcript reading."""

from .runner import (
    ClaudeExecutionResult,
    ClaudeNotFoundError,
    ClaudeRunner,
    ClaudeRunnerError,
    ClaudeTimeoutError,
)
from .transcripts import TranscriptReader

__all__ = [
    "ClaudeExecutionResult",
    "ClaudeNotFoundError",
    "ClaudeRunner",
    "ClaudeRunnerError",
    "ClaudeTimeoutError",
    "TranscriptReader",
]
