"""Pure helpers for deriving and validating session titles."""

from __future__ import annotations

import re

SOURCE_TEXT_LIMIT = 200
TITLE_MAX_LENGTH = 60

TITLE_PROMPT = (
    "Generate a 2-5 word title for a coding session that starts with the user "
    "message below. Reply with the title only: no quotes, no markdown, no "
    "trailing punctuation.\n\n"
    "User message: {message}"
)

_URL = re.compile(r"https?://\S*")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.?!]")
_CODE_FENCE = re.compile(r"^```(?:[\w-]*\n)?(.*?)\n?```$", re.DOTALL)
_DECORATION = "#*\"'` \t\r\n"


def truncate(text: str, max_len: int = 30) -> str:
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 3, 0)] + "..."


def bound_source_text(text: str) -> str:
    return text[:SOURCE_TEXT_LIMIT]


def derive_fallback(message: str) -> str:
    """Cheap local title: the first sentence without URLs, at most 60 characters."""

    text = _URL.sub("", message)
    text = _WHITESPACE.sub(" ", text)
    text = _SENTENCE_END.split(text, maxsplit=1)[0]
    return text.strip()[:TITLE_MAX_LENGTH].rstrip()


def strip_decoration(raw: str) -> str:
    """Remove quotes, emphasis, heading marks and code fences around a model reply."""

    text = raw.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    return text.strip(_DECORATION)


def validate_title(candidate: str | None) -> str | None:
    """Return the cleaned title, or None when it is empty, too long, or multi-line."""

    if candidate is None:
        return None
    title = strip_decoration(candidate)
    if not title or len(title) > TITLE_MAX_LENGTH:
        return None
    if "\n" in title or "\r" in title:
        return None
    return title


__all__ = [
    "SOURCE_TEXT_LIMIT",
    "TITLE_MAX_LENGTH",
    "TITLE_PROMPT",
    "bound_source_text",
    "derive_fallback",
    "strip_decoration",
    "truncate",
    "validate_title",
]
