"""Remove registry entries whose tmux session no longer exists."""

from __future__ import annotations

import logging
from typing import Protocol

from .storage import RegistryStore, ThrottleMarker

logger = logging.getLogger(__name__)


class LivenessOracle(Protocol):
    """Authoritative answer to "is this session still running"."""

    async def exists(self, session_name: str) -> bool:
        ...

    async def list_all(self) -> list[tuple[str, int]]:
        ...


class GarbageCollector:
    """Reconcile the registry against the liveness oracle, at most once per window."""

    def __init__(self, registry: RegistryStore, oracle: LivenessOracle, marker: ThrottleMarker) -> None:
        self._registry = registry
        self._oracle = oracle
        self._marker = marker

    async def collect(self, force: bool = False) -> int:
        """Delete dead entries and return how many were removed.

        A failed liveness query counts as dead.
        """

        if not self._marker.acquire(force):
            return 0

        removed = 0
        for name in self._registry.list_keys():
            try:
                alive = await self._oracle.exists(name)
            except Exception as exc:
                logger.debug("Liveness check failed", extra={"session": name, "error": str(exc)})
                alive = False
            if alive:
                continue
            if self._registry.delete(name):
                removed += 1

        if removed:
            logger.info("Cleaned up %d stale registry entries", removed, extra={"removed": removed})
        return removed


__all__ = ["GarbageCollector", "LivenessOracle"]
