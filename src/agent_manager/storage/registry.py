"""JSON document store for live session metadata."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from pydantic import ValidationError

from .files import atomic_write_text
from .models import RegistryDocument, SessionRecord

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset({"directory", "branch", "agent_type", "task", "worktree_path"})


class RegistryStore:
    """Keyed map of session name to :class:`SessionRecord`, persisted as one document.

    Every mutation rewrites the whole document through an atomic replace.
    A missing or corrupt document reads as an empty registry.
    """

    def __init__(self, path: Path, *, clock: Callable[[], datetime] | None = None) -> None:
        self._path = Path(path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> None:
        """Create an empty document if none exists yet."""

        if not self._path.exists():
            self._write(RegistryDocument())

    def _read(self) -> RegistryDocument:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return RegistryDocument()
        except OSError as exc:
            logger.warning("Registry unreadable; treating as empty", extra={"path": str(self._path), "error": str(exc)})
            return RegistryDocument()

        try:
            return RegistryDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Registry malformed; treating as empty", extra={"path": str(self._path), "error": str(exc)})
            return RegistryDocument()

    def _write(self, document: RegistryDocument) -> None:
        payload = document.model_dump(mode="json")
        atomic_write_text(self._path, json.dumps(payload, indent=2) + "\n")

    def put(self, record: SessionRecord) -> SessionRecord:
        """Insert or wholesale replace the record stored under ``record.name``."""

        document = self._read()
        document.sessions[record.name] = record
        self._write(document)
        return record

    def add(
        self,
        name: str,
        directory: str,
        branch: str = "",
        agent_type: str = "",
        task: str = "",
        *,
        worktree_path: str = "",
    ) -> SessionRecord:
        record = SessionRecord(
            name=name,
            directory=directory,
            branch=branch,
            agent_type=agent_type,
            task=task,
            worktree_path=worktree_path,
            created_at=self._clock().replace(microsecond=0),
        )
        return self.put(record)

    def get(self, name: str) -> SessionRecord | None:
        return self._read().sessions.get(name)

    def get_field(self, name: str, field: str) -> str:
        return self.get_fields(name, [field])[field]

    def get_fields(self, name: str, fields: Iterable[str]) -> dict[str, str]:
        """Return the requested fields with one document read; unknown values are ``""``."""

        wanted = list(fields)
        record = self._read().sessions.get(name)
        if record is None:
            return {field: "" for field in wanted}

        dumped = record.model_dump(mode="json")
        return {field: str(dumped.get(field) or "") for field in wanted}

    def set_field(self, name: str, field: str, value: str) -> bool:
        """Update one field in place. Returns False when the session is unknown."""

        if field not in MUTABLE_FIELDS:
            raise ValueError(f"Field '{field}' cannot be updated")

        document = self._read()
        record = document.sessions.get(name)
        if record is None:
            return False

        document.sessions[name] = record.model_copy(update={field: value})
        self._write(document)
        return True

    def delete(self, name: str) -> bool:
        document = self._read()
        if document.sessions.pop(name, None) is None:
            return False
        self._write(document)
        return True

    def list_keys(self) -> list[str]:
        return list(self._read().sessions.keys())

    def records(self) -> list[SessionRecord]:
        return list(self._read().sessions.values())


__all__ = ["MUTABLE_FIELDS", "RegistryStore"]
