"""Tool registration for the agent-manager MCP server."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from fastmcp import Context, FastMCP

from ..manager import AgentManager
from ..sessions import forget_session, register_session
from ..storage import HistoryEntry, SessionRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    list_sessions: Any
    session_info: Any
    register_session: Any
    remove_session: Any
    collect_sessions: Any
    scan_titles: Any
    directory_history: Any
    annotate_directory: Any


def _record_payload(record: SessionRecord) -> dict[str, Any]:
    return record.model_dump(mode="json")


def _history_payload(entry: HistoryEntry) -> dict[str, Any]:
    return entry.model_dump(mode="json")


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


def register_tools(server: FastMCP, *, manager: AgentManager) -> ToolHandles:
    """Register agent-manager tools on the server."""

    async def _list_sessions(context: Context | None = None) -> list[dict[str, Any]]:
        """List live agent sessions, most recently active first."""

        sessions = await manager.list_sessions()
        _emit_log(context, "debug", "Listed sessions", extra={"count": len(sessions)})
        return sessions

    def _session_info(name: str, context: Context | None = None) -> dict[str, Any]:
        """Return the registry record for one session."""

        record = manager.registry.get(name)
        if record is None:
            raise ValueError(f"Unknown session '{name}'")
        return _record_payload(record)

    def _register_session(
        directory: str,
        agent_type: str = "claude",
        task: str = "",
        branch: str = "",
        worktree_path: str = "",
        name: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Record a session that was just launched in tmux."""

        record = register_session(
            manager.registry,
            manager.history,
            directory,
            agent_type,
            task=task,
            branch=branch,
            worktree_path=worktree_path,
            name=name,
            prefix=manager.settings.session_prefix,
        )
        _emit_log(context, "info", "Registered session", extra={"session": record.name})
        return _record_payload(record)

    def _remove_session(name: str, context: Context | None = None) -> dict[str, Any]:
        """Drop a session from the registry (history is kept)."""

        removed = forget_session(manager.registry, name)
        return {"name": name, "removed": removed}

    async def _collect_sessions(force: bool = False, context: Context | None = None) -> dict[str, Any]:
        """Remove registry entries whose tmux session is gone."""

        removed = await manager.collect(force)
        _emit_log(context, "info", "Collected stale sessions", extra={"removed": removed})
        return {"removed": removed}

    async def _scan_titles(
        force: bool = False,
        wait_seconds: float = 0.0,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Title untitled sessions; optionally wait for model upgrades to land."""

        report = await manager.scan(force)
        finished = 0
        if wait_seconds > 0:
            finished = await manager.scanner.wait_pending(wait_seconds)
        payload = asdict(report)
        payload["upgrades_finished"] = finished
        _emit_log(context, "debug", "Title scan", extra=payload)
        return payload

    def _directory_history(path: str, limit: int = 10, context: Context | None = None) -> list[dict[str, Any]]:
        """Recent task history for a directory, newest first."""

        entries = manager.history.query_by_directory(path, limit=limit)
        return [_history_payload(entry) for entry in entries]

    def _annotate_directory(path: str, context: Context | None = None) -> dict[str, Any]:
        """One-line summary of recent sessions in a directory."""

        return {"path": path, "annotation": manager.annotate(path)}

    tool_list = server.tool(
        name="list_sessions",
        description="List live agent sessions with directory, branch, agent type, title and activity.",
    )(_list_sessions)

    tool_info = server.tool(
        name="session_info",
        description="Fetch the stored metadata for one agent session.",
    )(_session_info)

    tool_register = server.tool(
        name="register_session",
        description=(
            "Record a newly launched agent session. A non-empty task is also written "
            "to the directory history immediately."
        ),
    )(_register_session)

    tool_remove = server.tool(
        name="remove_session",
        description="Remove a session from the registry after it has been killed.",
    )(_remove_session)

    tool_collect = server.tool(
        name="collect_sessions",
        description="Garbage-collect registry entries whose tmux session no longer exists.",
    )(_collect_sessions)

    tool_scan = server.tool(
        name="scan_titles",
        description="Give untitled sessions a fallback title and start model title upgrades.",
    )(_scan_titles)

    tool_history = server.tool(
        name="directory_history",
        description="List recent task titles recorded for a directory, newest first.",
    )(_directory_history)

    tool_annotate = server.tool(
        name="annotate_directory",
        description="Summarize the last few sessions run in a directory.",
    )(_annotate_directory)

    return ToolHandles(
        list_sessions=tool_list,
        session_info=tool_info,
        register_session=tool_register,
        remove_session=tool_remove,
        collect_sessions=tool_collect,
        scan_titles=tool_scan,
        directory_history=tool_history,
        annotate_directory=tool_annotate,
    )


__all__ = ["ToolHandles", "register_tools"]
