"""Session title derivation and background enrichment."""

from .scanner import ScanReport, TitleGenerator, TitleScanner, TranscriptSource, upgrade_title
from .text import derive_fallback, strip_decoration, truncate, validate_title

__all__ = [
    "ScanReport",
    "TitleGenerator",
    "TitleScanner",
    "TranscriptSource",
    "derive_fallback",
    "strip_decoration",
    "truncate",
    "upgrade_title",
    "validate_title",
]
