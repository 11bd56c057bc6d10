"""vcml-explorer CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

from vcmlsession import RegistryConfig

from .commands import CommandRegistry, build_registry
from .context import ExplorerContext
from .history import HistoryStore
from .repl import ExplorerREPL

LOG = logging.getLogger("vcml_explorer.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Explore and control running VCML simulations")
    parser.add_argument(
        "--announce-dir",
        type=Path,
        help="Directory scanned for session announcements (default: $VCML_ANNOUNCE_DIR or the temp dir)",
    )
    parser.add_argument("--timeout", type=float, help="Connect/read timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Emit JSON output when supported")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("VCML_EXPLORER_LOG", "WARNING"),
        help="Logging level (default WARNING)",
    )
    parser.add_argument(
        "-c",
        "--command",
        action="append",
        help="Execute a command non-interactively (quote the command string; may be repeated)",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".vcml-explorer-history",
        help="Path to command history file",
    )
    parser.add_argument("--no-scan", action="store_true", help="Skip the initial announcement scan")
    return parser


def build_context(args: argparse.Namespace) -> ExplorerContext:
    config = RegistryConfig.from_env()
    if args.announce_dir:
        config.announce_dir = args.announce_dir.expanduser()
    if args.timeout:
        config.connect_timeout = args.timeout
        config.read_timeout = args.timeout
    ctx = ExplorerContext(config=config, json_output=args.json)
    if not args.no_scan:
        assert ctx.registry is not None
        ctx.registry.refresh()
    return ctx


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    ctx = build_context(args)
    registry = build_registry()
    if args.command:
        return _run_commands(ctx, registry, args.command)
    repl = ExplorerREPL(ctx, registry, history_store=HistoryStore(str(args.history)))
    try:
        return repl.run()
    except SystemExit as exc:
        return int(exc.code or 0)
    except KeyboardInterrupt:
        print()
        ctx.shutdown()
        return 0


def _run_commands(ctx: ExplorerContext, registry: CommandRegistry, command_lines: List[str]) -> int:
    repl = ExplorerREPL(ctx, registry)
    rc = 0
    try:
        for line in command_lines:
            rc = repl.dispatch(line)
            if rc:
                break
    except SystemExit as exc:
        return int(exc.code or 0)
    ctx.shutdown()
    return rc


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
