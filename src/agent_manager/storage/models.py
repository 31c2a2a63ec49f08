"""Data models for the session registry and history log."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionRecord(BaseModel):
    """Metadata for one live agent session, keyed by its tmux session name."""

    name: str = Field(..., description="Unique tmux session name; immutable.")
    directory: str = Field(..., description="Absolute path the session operates in.")
    branch: str = Field(default="", description="VCS branch, empty when not applicable.")
    agent_type: str = Field(
        default="",
        description="Tag for the external agent tool. Unknown values are passed through.",
    )
    task: str = Field(default="", description="Short human-readable title; empty means untitled.")
    worktree_path: str = Field(
        default="",
        description="Isolated worktree path when the session was launched with one.",
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Session name must not be empty")
        return normalized

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return value.strftime(TIMESTAMP_FORMAT)


class HistoryEntry(BaseModel):
    """One task assignment in a directory, kept after the session itself is gone."""

    model_config = ConfigDict(frozen=True)

    directory: str
    task: str
    agent_type: str = ""
    branch: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return value.strftime(TIMESTAMP_FORMAT)


class RegistryDocument(BaseModel):
    """On-disk shape of ``sessions.json``."""

    sessions: dict[str, SessionRecord] = Field(default_factory=dict)


__all__ = ["HistoryEntry", "RegistryDocument", "SessionRecord", "TIMESTAMP_FORMAT", "utc_now"]
