"""Object hierarchy commands (list/exec)."""

from __future__ import annotations

from typing import List

from vcmlsession import Session, SessionError

from .base import Command, build_parser, report_failure, target_session
from ..context import ExplorerContext
from ..output import describe_module, emit_error, emit_result, render_modules


class ListCommand(Command):
    def __init__(self) -> None:
        super().__init__("list", "List top-level objects or the children of an object", aliases=("ls",))
        self._parser = build_parser("list")
        self._parser.add_argument("path", nargs="?", default="", help="Dotted object path")
        self._parser.add_argument("--session", help="Session index, URI or name (default: current)")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        session = target_session(ctx, args.session)
        if session is None:
            return 1
        if session.is_running:
            emit_error(ctx, message=f"{session} is running; stop it first")
            return 1
        registry = ctx.registry
        assert registry is not None
        try:
            if not args.path:
                return self._list_top_level(ctx, session)
            return self._list_object(ctx, session, args.path)
        except SessionError as exc:
            registry.report_error(session, exc)
            return report_failure(ctx, "list")

    def _list_top_level(self, ctx: ExplorerContext, session: Session) -> int:
        assert ctx.registry is not None
        modules = ctx.registry.top_level_objects(session)
        if modules is None:
            return report_failure(ctx, "list")
        if ctx.json_output:
            emit_result(ctx, message="objects", data={"objects": [describe_module(m) for m in modules]})
        else:
            render_modules(modules)
        return 0

    def _list_object(self, ctx: ExplorerContext, session: Session, path: str) -> int:
        assert ctx.registry is not None
        module = ctx.registry.find_object(session, path)
        if module is None:
            if ctx.registry.get(session.uri) is None:
                return report_failure(ctx, "list")
            emit_error(ctx, message=f"no object named '{path}'")
            return 1
        info = describe_module(module)
        if ctx.json_output:
            emit_result(ctx, message=module.full_name, data=info)
            return 0
        print(f"{module.full_name} [{info['kind']}]")
        if module.attributes:
            print(f"  attributes: {', '.join(module.attributes)}")
        if module.commands:
            print(f"  commands  : {', '.join(module.commands)}")
        render_modules(module.children, indent="    ")
        return 0


class ExecCommand(Command):
    def __init__(self) -> None:
        super().__init__("exec", "Execute a command on a simulation object")
        self._parser = build_parser("exec")
        self._parser.add_argument("path", help="Dotted object path")
        self._parser.add_argument("command", help="Object command name")
        self._parser.add_argument("args", nargs="*", help="Command arguments")
        self._parser.add_argument("--session", help="Session index, URI or name (default: current)")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        session = target_session(ctx, args.session)
        if session is None:
            return 1
        if session.is_running:
            emit_error(ctx, message=f"{session} is running; stop it first")
            return 1
        registry = ctx.registry
        assert registry is not None
        module = registry.find_object(session, args.path)
        if module is None:
            if registry.get(session.uri) is None:
                return report_failure(ctx, "exec")
            emit_error(ctx, message=f"no object named '{args.path}'")
            return 1
        response = registry.execute(session, module, args.command, *args.args)
        if response is None:
            return report_failure(ctx, "exec")
        emit_result(
            ctx,
            message=response.text,
            data={"object": module.full_name, "command": args.command, "reply": response.text},
        )
        return 0
