from __future__ import annotations

import json
import logging
from pathlib import Path

from agent_manager import __version__
from agent_manager.config import AgentManagerSettings
from agent_manager.manager import create_manager
from agent_manager.server import TITLER_LOGGER, configure_logging, create_server
from agent_manager.tmux.runner import FakeTmuxRunner


class NoTranscripts:
    def first_user_message(self, directory: str) -> str | None:
        return None


def test_status_resource_reports_stores(tmp_path: Path, clock) -> None:
    settings = AgentManagerSettings()
    settings.am_dir = tmp_path / "am"
    manager = create_manager(
        settings,
        oracle=FakeTmuxRunner({}),
        transcripts=NoTranscripts(),
        clock=clock,
    )
    manager.registry.add("am-one", "/repo")
    manager.history.append("/repo", "Fix auth", "claude")

    server = create_server(settings, manager)
    payload = json.loads(server.status_resource())  # type: ignore[attr-defined]

    assert payload["server_version"] == __version__
    assert payload["registry"]["sessions"] == 1
    assert payload["history"]["entries"] == 1
    assert payload["titler"]["pending_upgrades"] == 0
    assert payload["tmux"]["available"] is True
    assert getattr(server, "manager") is manager


def test_configure_logging_adds_titler_file_once(tmp_path: Path) -> None:
    titler_log = tmp_path / "titler.log"
    titler_logger = logging.getLogger(TITLER_LOGGER)
    before = list(titler_logger.handlers)
    try:
        configure_logging("INFO", titler_log)
        configure_logging("INFO", titler_log)

        added = [handler for handler in titler_logger.handlers if handler not in before]
        assert len(added) == 1

        logging.getLogger(f"{TITLER_LOGGER}.scanner").info("scan start (force=True)")
        added[0].flush()
        assert "scan start (force=True)" in titler_log.read_text(encoding="utf-8")
    finally:
        for handler in titler_logger.handlers[:]:
            if handler not in before:
                titler_logger.removeHandler(handler)
                handler.close()
