"""Connect/disconnect commands."""

from __future__ import annotations

from typing import List

from .base import Command, build_parser, report_failure, target_session
from ..context import ExplorerContext
from ..output import describe_session, emit_result


class ConnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("connect", "Connect to a session", aliases=("open",))
        self._parser = build_parser("connect")
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
        if not ctx.registry.connect_session(session):
            return report_failure(ctx, "connect")
        if ctx.registry.current is None:
            ctx.registry.select(session)
        emit_result(
            ctx,
            message=f"Connected to {session} t={session.time:.9f}s",
            data=describe_session(session),
        )
        return 0


class DisconnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("disconnect", "Disconnect from a session", aliases=("close",))
        self._parser = build_parser("disconnect")
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
        if not ctx.registry.disconnect_session(session):
            return report_failure(ctx, "disconnect")
        emit_result(ctx, message=f"Disconnected from {session}", data=describe_session(session))
        return 0
