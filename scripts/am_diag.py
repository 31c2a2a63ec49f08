"""agent-manager diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict

from agent_manager.config import get_settings
from agent_manager.manager import AgentManager, create_manager
from agent_manager.server import configure_logging


def load_manager() -> AgentManager:
    settings = get_settings()
    configure_logging(settings.log_level, settings.titler_log_path)
    return create_manager(settings)


def drain_seconds(args: argparse.Namespace, manager: AgentManager) -> float:
    """Seconds to keep the process alive for title upgrades; ``--wait 0`` opts out."""

    if args.wait is None:
        return manager.settings.title_timeout
    return max(args.wait, 0.0)


async def drain_upgrades(manager: AgentManager, seconds: float) -> int:
    if seconds <= 0 or not manager.scanner.pending:
        return 0
    return await manager.scanner.wait_pending(seconds)


def cmd_sessions(args: argparse.Namespace) -> None:
    manager = load_manager()
    if args.live:

        async def _run() -> None:
            sessions = await manager.list_sessions()
            if args.json:
                print(json.dumps(sessions, indent=2), flush=True)
            else:
                for session in sessions:
                    print(f"{session['name']}  {session['display']}  {session['task']}", flush=True)
            await drain_upgrades(manager, drain_seconds(args, manager))

        asyncio.run(_run())
        return

    records = [record.model_dump(mode="json") for record in manager.registry.records()]
    print(json.dumps(records, indent=2))


def cmd_history(args: argparse.Namespace) -> None:
    manager = load_manager()
    if args.directory:
        entries = manager.history.query_by_directory(args.directory, limit=args.limit)
    else:
        entries = manager.history.entries()
        if args.limit is not None:
            entries = entries[-args.limit :] if args.limit > 0 else []
    print(json.dumps([entry.model_dump(mode="json") for entry in entries], indent=2))


def cmd_prune(args: argparse.Namespace) -> None:
    manager = load_manager()
    print(json.dumps({"removed": manager.history.prune()}))


def cmd_gc(args: argparse.Namespace) -> None:
    manager = load_manager()
    removed = asyncio.run(manager.collect(force=args.force))
    print(json.dumps({"removed": removed}))


def cmd_scan(args: argparse.Namespace) -> None:
    manager = load_manager()

    async def _run() -> None:
        report = await manager.scan(force=args.force)
        print(json.dumps(asdict(report), indent=2), flush=True)
        await drain_upgrades(manager, drain_seconds(args, manager))

    asyncio.run(_run())


def cmd_annotate(args: argparse.Namespace) -> None:
    manager = load_manager()
    print(manager.annotate(args.path))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="agent-manager diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_sessions = sub.add_parser("sessions", help="List registry records")
    p_sessions.add_argument("--live", action="store_true", help="Join with tmux liveness (runs GC + scan)")
    p_sessions.add_argument("--json", action="store_true", help="Output JSON (with --live)")
    p_sessions.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for title upgrades after printing (default: AM_TITLE_TIMEOUT, 0 to skip)",
    )
    p_sessions.set_defaults(func=cmd_sessions)

    p_history = sub.add_parser("history", help="List history entries")
    p_history.add_argument("--directory")
    p_history.add_argument("--limit", type=int, default=None)
    p_history.set_defaults(func=cmd_history)

    p_prune = sub.add_parser("prune", help="Drop history entries past the retention window")
    p_prune.set_defaults(func=cmd_prune)

    p_gc = sub.add_parser("gc", help="Remove registry entries for dead tmux sessions")
    p_gc.add_argument("--force", action="store_true")
    p_gc.set_defaults(func=cmd_gc)

    p_scan = sub.add_parser("scan", help="Title untitled sessions")
    p_scan.add_argument("--force", action="store_true")
    p_scan.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for title upgrades after printing (default: AM_TITLE_TIMEOUT, 0 to skip)",
    )
    p_scan.set_defaults(func=cmd_scan)

    p_annotate = sub.add_parser("annotate", help="Summarize recent sessions for a directory")
    p_annotate.add_argument("path")
    p_annotate.set_defaults(func=cmd_annotate)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
