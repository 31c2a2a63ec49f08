"""Configuration management for agent-manager."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentManagerSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    am_dir: Path = Field(default=Path("~/.agent-manager"), validation_alias="AM_DIR")
    session_prefix: str = Field(default="am-", validation_alias="AM_SESSION_PREFIX")
    log_level: str = Field(default="INFO", validation_alias="AM_LOG_LEVEL")
    gc_interval: int = Field(default=60, validation_alias="AM_GC_INTERVAL")
    title_scan_interval: int = Field(default=60, validation_alias="AM_TITLE_SCAN_INTERVAL")
    history_prune_interval: int = Field(default=3600, validation_alias="AM_HISTORY_PRUNE_INTERVAL")
    history_retention_days: int = Field(default=7, validation_alias="AM_HISTORY_RETENTION_DAYS")
    title_timeout: float = Field(default=30.0, validation_alias="AM_TITLE_TIMEOUT")
    title_model: str = Field(default="haiku", validation_alias="AM_TITLE_MODEL")
    claude_path: str | None = Field(default=None, validation_alias="CLAUDE_PATH")
    tmux_path: str | None = Field(default=None, validation_alias="TMUX_PATH")
    claude_projects_dir: Path = Field(
        default=Path("~/.claude/projects"), validation_alias="AM_CLAUDE_PROJECTS_DIR"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "AM_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("session_prefix")
    @classmethod
    def _validate_prefix(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("AM_SESSION_PREFIX must not be empty")
        return value.strip()

    @field_validator(
        "gc_interval",
        "title_scan_interval",
        "history_prune_interval",
        "history_retention_days",
        "title_timeout",
    )
    @classmethod
    def _validate_positive(cls, value):
        if value <= 0:
            raise ValueError("intervals, retention and timeouts must be > 0")
        return value

    @property
    def registry_path(self) -> Path:
        return self.am_dir / "sessions.json"

    @property
    def history_path(self) -> Path:
        return self.am_dir / "history.jsonl"

    @property
    def gc_marker_path(self) -> Path:
        return self.am_dir / ".gc_last"

    @property
    def title_scan_marker_path(self) -> Path:
        return self.am_dir / ".title_scan_last"

    @property
    def prune_marker_path(self) -> Path:
        return self.am_dir / ".prune_last"

    @property
    def titler_log_path(self) -> Path:
        return self.am_dir / "titler.log"

    @property
    def history_retention(self) -> timedelta:
        return timedelta(days=self.history_retention_days)


@lru_cache(maxsize=1)
def get_settings() -> AgentManagerSettings:
    """Return cached settings instance."""

    settings = AgentManagerSettings()
    settings.am_dir = settings.am_dir.expanduser().resolve()
    settings.claude_projects_dir = settings.claude_projects_dir.expanduser().resolve()
    return settings


__all__ = ["AgentManagerSettings", "get_settings"]
