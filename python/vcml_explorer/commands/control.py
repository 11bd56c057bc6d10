"""Execution control commands (continue/stop/step/quit-sim)."""

from __future__ import annotations

from typing import List

from .base import Command, build_parser, report_failure, target_session
from ..context import ExplorerContext
from ..output import describe_session, emit_result


class ContinueCommand(Command):
    def __init__(self) -> None:
        super().__init__("continue", "Resume the simulation", aliases=("cont", "run"))
        self._parser = build_parser("continue")
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
        if not ctx.registry.start_simulation(session):
            return report_failure(ctx, "continue")
        emit_result(ctx, message=f"Running {session}", data=describe_session(session))
        return 0


class StopCommand(Command):
    def __init__(self) -> None:
        super().__init__("stop", "Interrupt a running simulation", aliases=("pause",))
        self._parser = build_parser("stop")
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
        if not ctx.registry.stop_simulation(session):
            return report_failure(ctx, "stop")
        emit_result(ctx, message=f"Stopped {session} at t={session.time:.9f}s", data=describe_session(session))
        return 0


class StepCommand(Command):
    def __init__(self) -> None:
        super().__init__("step", "Advance the simulation by one step", aliases=("next",))
        self._parser = build_parser("step")
        self._parser.add_argument("count", nargs="?", type=int, default=1, help="Number of steps (default 1)")
        self._parser.add_argument("--session", help="Session index, URI or name (default: current)")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        session = target_session(ctx, args.session)
        if session is None:
            return 1
        assert ctx.registry is not None
        count = max(1, args.count)
        for _ in range(count):
            if not ctx.registry.step_simulation(session):
                return report_failure(ctx, "step")
        data = describe_session(session)
        data["steps"] = count
        emit_result(ctx, message=f"Stepped {session} ({count} step(s)) t={session.time:.9f}s", data=data)
        return 0


class QuitSimulationCommand(Command):
    def __init__(self) -> None:
        super().__init__("quit-sim", "Terminate the simulator process", aliases=("kill",))
        self._parser = build_parser("quit-sim")
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
        if not ctx.registry.quit_simulation(session):
            return report_failure(ctx, "quit")
        emit_result(ctx, message=f"Quit {session}", data={"result": "quit", "uri": session.uri})
        return 0
