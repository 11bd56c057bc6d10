"""Session discovery and selection commands."""

from __future__ import annotations

from typing import List

from vcmlsession import InvalidURIError

from .base import Command, build_parser, report_failure, target_session
from ..context import ExplorerContext
from ..output import describe_session, emit_error, emit_result, render_session_table


class SessionsCommand(Command):
    def __init__(self) -> None:
        super().__init__("sessions", "Scan for announced simulators and list sessions", aliases=("ls-sessions", "refresh"))
        self._parser = build_parser("sessions")
        self._parser.add_argument("--no-scan", action="store_true", help="List known sessions without scanning")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        registry = ctx.registry
        assert registry is not None
        added = [] if args.no_scan else registry.refresh()
        sessions = registry.sessions
        if ctx.json_output:
            current = registry.current
            emit_result(
                ctx,
                message="sessions",
                data={
                    "sessions": [describe_session(session) for session in sessions],
                    "current": current.uri if current else None,
                    "added": [session.uri for session in added],
                },
            )
            return 0
        render_session_table(sessions, current=registry.current)
        return 0


class AddCommand(Command):
    def __init__(self) -> None:
        super().__init__("add", "Add a remote session by URI (host:port[:user[:executable]])")
        self._parser = build_parser("add")
        self._parser.add_argument("uri", help="Session URI")
        self._parser.add_argument("--connect", action="store_true", help="Connect right away")
        self._parser.add_argument("--select", action="store_true", help="Make it the current session")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        registry = ctx.registry
        assert registry is not None
        try:
            session = registry.add_remote(args.uri)
        except InvalidURIError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        if args.select:
            registry.select(session)
        if args.connect and not registry.connect_session(session):
            return report_failure(ctx, "connect")
        emit_result(ctx, message=f"Added {session}", data=describe_session(session))
        return 0


class SelectCommand(Command):
    def __init__(self) -> None:
        super().__init__("select", "Select the current session by index, URI or name", aliases=("use",))
        self._parser = build_parser("select")
        self._parser.add_argument("session", help="Session index, URI or name")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        session = target_session(ctx, args.session)
        if session is None:
            return 1
        assert ctx.registry is not None
        ctx.registry.select(session)
        emit_result(ctx, message=f"Selected {session}", data=describe_session(session))
        return 0


class RemoveCommand(Command):
    def __init__(self) -> None:
        super().__init__("remove", "Stop, disconnect and forget a session", aliases=("rm",))
        self._parser = build_parser("remove")
        self._parser.add_argument("session", nargs="?", help="Session index, URI or name (default: current)")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        session = target_session(ctx, args.session)
        if session is None:
            return 1
        assert ctx.registry is not None
        ctx.registry.remove(session)
        emit_result(ctx, message=f"Removed {session}", data={"result": "removed", "uri": session.uri})
        return 0
