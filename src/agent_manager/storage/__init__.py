"""Storage abstractions for agent-manager."""

from .files import append_line, atomic_write_text
from .history import HistoryLog, normalize_directory
from .markers import ThrottleMarker
from .models import HistoryEntry, RegistryDocument, SessionRecord
from .registry import MUTABLE_FIELDS, RegistryStore

__all__ = [
    "HistoryEntry",
    "HistoryLog",
    "MUTABLE_FIELDS",
    "RegistryDocument",
    "RegistryStore",
    "SessionRecord",
    "ThrottleMarker",
    "append_line",
    "atomic_write_text",
    "normalize_directory",
]
