"""Session status command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ExplorerContext
from ..output import describe_session, emit_result


class StatusCommand(Command):
    def __init__(self) -> None:
        super().__init__("status", "Show the current session state", aliases=("info",))

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        session = ctx.resolve_session(argv[0] if argv else None)
        assert ctx.registry is not None
        if session is None:
            count = len(ctx.registry.sessions)
            emit_result(
                ctx,
                message=f"No session selected ({count} known, announce dir {ctx.config.announce_dir})",
                data={"status": "none", "known": count},
            )
            return 0
        data = describe_session(session)
        emit_result(ctx, message=f"Session: {session} ({session.state.value})", data=data)
        if not ctx.json_output:
            print(f"  uri       : {session.uri}")
            print(f"  executable: {session.executable}")
            print(f"  time      : {session.time:.9f}s")
        return 0
