"""Background titling of sessions that were launched without a task.

A scan commits a cheap fallback title straight away, then starts a detached
upgrade task that may later replace it with a model-generated title. The scan
never awaits the upgrades. An upgrade that fails, times out, or is abandoned
at process exit leaves the fallback in place.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from ..storage import HistoryLog, RegistryStore, ThrottleMarker
from .text import bound_source_text, derive_fallback, validate_title

logger = logging.getLogger(__name__)

DEFAULT_UPGRADE_TIMEOUT = 30.0


class TranscriptSource(Protocol):
    """Provides the opening user message for a directory, if one exists yet."""

    def first_user_message(self, directory: str) -> str | None:
        ...


class TitleGenerator(Protocol):
    """Slow, unreliable title generation (usually a model call)."""

    async def generate_title(self, text: str) -> str:
        ...


@dataclass(slots=True)
class ScanReport:
    """Outcome of one scan pass."""

    scanned: int = 0
    titled: int = 0
    skipped: int = 0
    upgrades: int = 0
    throttled: bool = False


async def upgrade_title(
    name: str,
    text: str,
    fallback: str,
    *,
    registry: RegistryStore,
    history: HistoryLog,
    generator: TitleGenerator,
    timeout: float = DEFAULT_UPGRADE_TIMEOUT,
) -> str | None:
    """Try to replace ``fallback`` with a generated title for session ``name``.

    Writes only when the reply validates and the session still exists with
    either the fallback this scan wrote or an empty task. Returns the applied
    title or None.
    """

    try:
        raw = await asyncio.wait_for(generator.generate_title(text), timeout=timeout)
    except asyncio.TimeoutError:
        logger.info("  %s: upgrade timed out after %gs", name, timeout)
        return None
    except Exception as exc:
        logger.info("  %s: upgrade failed (%s)", name, exc)
        return None

    title = validate_title(raw)
    if title is None:
        logger.info("  %s: upgrade rejected %r", name, (raw or "")[:80])
        return None

    record = registry.get(name)
    if record is None:
        logger.info("  %s: upgrade dropped, session gone", name)
        return None
    if record.task not in ("", fallback):
        logger.info("  %s: upgrade dropped, task changed", name)
        return None
    if title == record.task:
        return None

    if not registry.set_field(name, "task", title):
        return None
    history.append(record.directory, title, record.agent_type, record.branch)
    logger.info('  %s: upgraded="%s"', name, title)
    return title


class TitleScanner:
    """Finds untitled sessions and titles them, throttled by a persisted marker."""

    def __init__(
        self,
        registry: RegistryStore,
        history: HistoryLog,
        marker: ThrottleMarker,
        transcripts: TranscriptSource,
        generator: TitleGenerator | None = None,
        *,
        upgrade_timeout: float = DEFAULT_UPGRADE_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._history = history
        self._marker = marker
        self._transcripts = transcripts
        self._generator = generator
        self._upgrade_timeout = upgrade_timeout
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> frozenset[asyncio.Task]:
        return frozenset(self._pending)

    async def scan(self, force: bool = False) -> ScanReport:
        if not self._marker.acquire(force):
            elapsed = self._marker.seconds_since_last_run() or 0
            logger.debug("throttled (%ds since last scan)", int(elapsed))
            return ScanReport(throttled=True)

        logger.info("scan start (force=%s)", force)
        report = ScanReport()

        for name in self._registry.list_keys():
            fields = self._registry.get_fields(name, ["task", "directory", "branch", "agent_type"])
            if fields["task"]:
                continue

            report.scanned += 1
            directory = fields["directory"]
            if not directory:
                logger.info("  %s: skip (no directory)", name)
                report.skipped += 1
                continue

            try:
                message = self._transcripts.first_user_message(directory)
            except Exception as exc:
                logger.info("  %s: skip (transcript error: %s)", name, exc)
                report.skipped += 1
                continue
            if not message:
                logger.info("  %s: skip (no user message yet)", name)
                report.skipped += 1
                continue

            text = bound_source_text(message)
            fallback = derive_fallback(text)
            if not fallback:
                logger.info("  %s: skip (fallback empty for: %s...)", name, text[:60])
                report.skipped += 1
                continue

            if not self._registry.set_field(name, "task", fallback):
                report.skipped += 1
                continue
            self._history.append(directory, fallback, fields["agent_type"], fields["branch"])
            report.titled += 1
            logger.info('  %s: fallback="%s"', name, fallback)

            if self._generator is not None:
                self._spawn_upgrade(name, text, fallback)
                report.upgrades += 1

        logger.info("scan done: %d untitled, %d titled", report.scanned, report.titled)
        return report

    def _spawn_upgrade(self, name: str, text: str, fallback: str) -> None:
        task = asyncio.create_task(
            upgrade_title(
                name,
                text,
                fallback,
                registry=self._registry,
                history=self._history,
                generator=self._generator,
                timeout=self._upgrade_timeout,
            ),
            name=f"title-upgrade:{name}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_pending(self, timeout: float | None = None) -> int:
        """Give in-flight upgrades up to ``timeout`` seconds; returns how many finished."""

        if not self._pending:
            return 0
        done, _ = await asyncio.wait(set(self._pending), timeout=timeout)
        return len(done)


__all__ = [
    "DEFAULT_UPGRADE_TIMEOUT",
    "ScanReport",
    "TitleGenerator",
    "TitleScanner",
    "TranscriptSource",
    "upgrade_title",
]
