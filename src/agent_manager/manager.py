"""Composition root wiring stores, oracle, and titler from settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from .annotate import DirectoryAnnotator, format_time_ago
from .claude import ClaudeNotFoundError, ClaudeRunner, TranscriptReader
from .collector import GarbageCollector, LivenessOracle
from .config import AgentManagerSettings, get_settings
from .storage import HistoryLog, RegistryStore, ThrottleMarker
from .titling import ScanReport, TitleGenerator, TitleScanner, TranscriptSource
from .tmux import TmuxNotFoundError, TmuxRunner

logger = logging.getLogger(__name__)

SESSION_FIELDS = ("directory", "branch", "agent_type", "task", "worktree_path")


@dataclass(slots=True)
class RefreshReport:
    removed: int
    scan: ScanReport


@dataclass
class AgentManager:
    """Everything a UI touchpoint needs, built once per process."""

    settings: AgentManagerSettings
    registry: RegistryStore
    history: HistoryLog
    annotator: DirectoryAnnotator
    scanner: TitleScanner
    collector: GarbageCollector | None
    oracle: LivenessOracle | None
    clock: Callable[[], datetime]
    availability: dict[str, Any] = field(default_factory=dict)

    async def collect(self, force: bool = False) -> int:
        if self.collector is None:
            logger.warning("tmux unavailable; skipping registry garbage collection")
            return 0
        return await self.collector.collect(force)

    async def scan(self, force: bool = False) -> ScanReport:
        return await self.scanner.scan(force)

    async def refresh(self, force: bool = False) -> RefreshReport:
        """GC first, then the synchronous part of the title scan."""

        removed = await self.collect(force)
        report = await self.scan(force)
        return RefreshReport(removed=removed, scan=report)

    def annotate(self, path: str) -> str:
        return self.annotator.annotate(path)

    async def list_sessions(self, *, refresh: bool = True) -> list[dict[str, Any]]:
        """Live sessions, most recently active first, joined with registry metadata."""

        if refresh:
            await self.refresh()
        if self.oracle is None:
            return []

        now = self.clock().timestamp()
        sessions: list[dict[str, Any]] = []
        for name, activity in await self.oracle.list_all():
            fields = self.registry.get_fields(name, SESSION_FIELDS)
            sessions.append(
                {
                    "name": name,
                    **fields,
                    "activity": activity,
                    "display": display_name(name, fields, now - activity),
                }
            )
        return sessions


def display_name(name: str, fields: dict[str, str], idle_seconds: float) -> str:
    """``dirname/branch [agent] (5m ago)`` as shown in the session picker."""

    directory = fields.get("directory", "")
    display = os.path.basename(directory.rstrip("/")) if directory else name
    if fields.get("branch"):
        display = f"{display}/{fields['branch']}"
    display = f"{display} [{fields.get('agent_type') or 'unknown'}]"
    return f"{display} ({format_time_ago(idle_seconds)})"


def create_manager(
    settings: AgentManagerSettings | None = None,
    *,
    oracle: LivenessOracle | None = None,
    generator: TitleGenerator | None = None,
    transcripts: TranscriptSource | None = None,
    clock: Callable[[], datetime] | None = None,
) -> AgentManager:
    """Build an :class:`AgentManager`; missing tmux or claude degrade instead of failing."""

    settings = settings or get_settings()
    clock = clock or (lambda: datetime.now(timezone.utc))
    availability: dict[str, Any] = {
        "tmux": {"available": oracle is not None, "error": None},
        "claude": {"available": generator is not None, "error": None},
    }

    if oracle is None:
        try:
            oracle = TmuxRunner(
                Path(settings.tmux_path) if settings.tmux_path else None,
                prefix=settings.session_prefix,
            )
            availability["tmux"]["available"] = True
        except TmuxNotFoundError as exc:
            availability["tmux"]["error"] = str(exc)

    if generator is None:
        try:
            generator = ClaudeRunner(
                Path(settings.claude_path) if settings.claude_path else None,
                model=settings.title_model,
                timeout=settings.title_timeout,
            )
            availability["claude"]["available"] = True
        except ClaudeNotFoundError as exc:
            availability["claude"]["error"] = str(exc)
            logger.debug("Title upgrades disabled", extra={"error": str(exc)})

    registry = RegistryStore(settings.registry_path, clock=clock)
    registry.ensure()
    history = HistoryLog(
        settings.history_path,
        retention=settings.history_retention,
        prune_marker=ThrottleMarker(settings.prune_marker_path, settings.history_prune_interval, clock=clock),
        clock=clock,
    )
    scanner = TitleScanner(
        registry,
        history,
        ThrottleMarker(settings.title_scan_marker_path, settings.title_scan_interval, clock=clock),
        transcripts or TranscriptReader(settings.claude_projects_dir),
        generator,
        upgrade_timeout=settings.title_timeout,
    )
    collector = (
        GarbageCollector(
            registry,
            oracle,
            ThrottleMarker(settings.gc_marker_path, settings.gc_interval, clock=clock),
        )
        if oracle is not None
        else None
    )

    return AgentManager(
        settings=settings,
        registry=registry,
        history=history,
        annotator=DirectoryAnnotator(history, clock=clock),
        scanner=scanner,
        collector=collector,
        oracle=oracle,
        clock=clock,
        availability=availability,
    )


__all__ = ["AgentManager", "RefreshReport", "create_manager", "display_name"]
