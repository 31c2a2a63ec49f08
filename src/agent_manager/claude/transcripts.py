"""Read the opening user prompt from Claude Code transcripts.

Claude Code keeps one JSONL transcript per conversation under
``~/.claude/projects/<mangled-cwd>/``. The mangled name replaces ``/`` and
``.`` in the absolute working directory with ``-``. Only ``user`` entries
are inspected; their ``message.content`` is either a plain string or a list
of content blocks.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_TAG_BLOCK = re.compile(r"<([A-Za-z][\w-]*)[^>]*>.*?</\1\s*>", re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

MAX_USER_LINES = 10
MIN_MESSAGE_LENGTH = 10


class TranscriptReader:
    """Source of the first substantive user message for a working directory."""

    def __init__(self, projects_dir: Path | None = None) -> None:
        self._projects_dir = Path(projects_dir) if projects_dir else Path.home() / ".claude" / "projects"

    @property
    def projects_dir(self) -> Path:
        return self._projects_dir

    def project_dir_for(self, directory: str) -> Path:
        absolute = str(Path(directory).expanduser().absolute())
        return self._projects_dir / absolute.replace("/", "-").replace(".", "-")

    def latest_transcript(self, directory: str) -> Path | None:
        project_dir = self.project_dir_for(directory)
        if not project_dir.is_dir():
            return None
        try:
            candidates = [path for path in project_dir.glob("*.jsonl") if path.is_file()]
            return max(candidates, key=lambda path: path.stat().st_mtime, default=None)
        except OSError as exc:
            logger.debug("Failed to list transcripts in %s: %s", project_dir, exc)
            return None

    def first_user_message(self, directory: str) -> str | None:
        """Return the first user message longer than 10 characters, or None."""

        transcript = self.latest_transcript(directory)
        if transcript is None:
            return None

        seen = 0
        try:
            with transcript.open(encoding="utf-8") as handle:
                for line in handle:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if not isinstance(entry, dict) or entry.get("type") != "user":
                        continue

                    seen += 1
                    cleaned = clean_message(_extract_text(entry))
                    if len(cleaned) > MIN_MESSAGE_LENGTH:
                        return cleaned
                    if seen >= MAX_USER_LINES:
                        break
        except OSError as exc:
            logger.debug("Failed to read transcript %s: %s", transcript, exc)
        return None


def _extract_text(entry: dict) -> str:
    message = entry.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return "\n".join(part for part in parts if part)
    return ""


def clean_message(content: str) -> str:
    """Drop system tag blocks and flatten the remaining text to one line."""

    without_blocks = _TAG_BLOCK.sub("", content)
    without_tags = _TAG.sub("", without_blocks)
    return _WHITESPACE.sub(" ", without_tags).strip()


__all__ = ["TranscriptReader", "clean_message"]
