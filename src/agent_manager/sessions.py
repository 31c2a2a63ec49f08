"""Launch-side registration of agent sessions."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Callable

from .storage import HistoryLog, RegistryStore, SessionRecord, normalize_directory

logger = logging.getLogger(__name__)


def generate_session_name(
    directory: str,
    prefix: str = "am-",
    *,
    clock: Callable[[], datetime] | None = None,
) -> str:
    """Prefix plus a short hash of the directory and launch time."""

    now = (clock or (lambda: datetime.now(timezone.utc)))()
    stamp = int(now.timestamp() * 1_000_000_000)
    digest = hashlib.md5(f"{directory}{stamp}".encode("utf-8")).hexdigest()
    return f"{prefix}{digest[:6]}"


def register_session(
    registry: RegistryStore,
    history: HistoryLog,
    directory: str,
    agent_type: str,
    *,
    task: str = "",
    branch: str = "",
    worktree_path: str = "",
    name: str | None = None,
    prefix: str = "am-",
) -> SessionRecord:
    """Record a freshly launched session.

    A caller-supplied task goes to the history log immediately; untitled
    sessions are picked up by the next title scan.
    """

    directory = normalize_directory(directory)
    record = registry.add(
        name or generate_session_name(directory, prefix),
        directory,
        branch,
        agent_type,
        task,
        worktree_path=worktree_path,
    )
    if record.task:
        history.append(record.directory, record.task, record.agent_type, record.branch)
    logger.info(
        "Registered session",
        extra={"session": record.name, "directory": record.directory, "agent_type": record.agent_type},
    )
    return record


def forget_session(registry: RegistryStore, name: str) -> bool:
    """Drop a killed session from the registry; history is left untouched."""

    return registry.delete(name)


__all__ = ["forget_session", "generate_session_name", "register_session"]
