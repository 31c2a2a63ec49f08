"""FastMCP server bootstrap for agent-manager."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastmcp import FastMCP

from . import __version__
from .config import AgentManagerSettings, get_settings
from .manager import AgentManager, create_manager
from .tools import register_tools

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
TITLER_LOGGER = "agent_manager.titling"


def configure_logging(level: str, titler_log: Path | None = None) -> None:
    """Configure root logging, plus a dedicated file for the background titler."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
    if titler_log is None:
        return

    titler_log.parent.mkdir(parents=True, exist_ok=True)
    titler_logger = logging.getLogger(TITLER_LOGGER)
    target = str(titler_log.resolve())
    for handler in titler_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    handler = logging.FileHandler(titler_log, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S"))
    titler_logger.addHandler(handler)
    if titler_logger.level == logging.NOTSET:
        titler_logger.setLevel(logging.INFO)


def create_server(
    settings: Optional[AgentManagerSettings] = None,
    manager: AgentManager | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around an :class:`AgentManager`."""

    settings = settings or get_settings()
    manager = manager or create_manager(settings)

    server = FastMCP(
        name="Agent Manager",
        instructions=(
            "Agent Manager tracks tmux sessions running coding agents. Use the tools "
            "to list live sessions with their titles, register new ones, and see what "
            "a directory was recently used for."
        ),
    )

    handles = register_tools(server, manager=manager)

    def status_resource() -> str:
        """Return a JSON string summarizing basic runtime state."""

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "am_dir": str(settings.am_dir),
            "registry": {
                "path": str(manager.registry.path),
                "sessions": len(manager.registry.list_keys()),
            },
            "history": {
                "path": str(manager.history.path),
                "entries": len(manager.history.entries()),
            },
            "titler": {"pending_upgrades": len(manager.scanner.pending)},
            **manager.availability,
        }
        return json.dumps(payload)

    server.resource(
        "resource://agent-manager/status",
        name="agent_manager_status",
        description="Registry size, history size, and collaborator availability.",
        mime_type="application/json",
    )(status_resource)

    setattr(server, "manager", manager)
    setattr(server, "tool_handles", handles)
    setattr(server, "status_resource", status_resource)
    return server


def main() -> None:
    """Entry point for running the agent-manager MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level, settings.titler_log_path)

    server = create_server(settings)
    manager: AgentManager = getattr(server, "manager")
    logging.getLogger(__name__).info(
        "Launching agent-manager MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "tmux_available": manager.availability["tmux"]["available"],
            "claude_available": manager.availability["claude"]["available"],
        },
    )
    server.run()


if __name__ == "__main__":
    main()
