"""User defined command aliases."""

from __future__ import annotations

from typing import List

from .base import Command, build_parser
from ..context import ExplorerContext
from ..output import emit_result


class AliasCommand(Command):
    def __init__(self) -> None:
        super().__init__("alias", "Define, list or clear command aliases")
        self._parser = build_parser("alias")
        self._parser.add_argument("name", nargs="?", help="Alias name")
        self._parser.add_argument("command", nargs="?", help="Command the alias expands to")
        self._parser.add_argument("--clear", action="store_true", help="Forget all aliases")

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        if args.clear:
            ctx.aliases.clear()
            emit_result(ctx, message="Aliases cleared", data={"aliases": {}})
            return 0
        if args.name and args.command:
            ctx.set_alias(args.name, args.command)
            emit_result(ctx, message=f"{args.name} -> {args.command}", data={"aliases": dict(ctx.aliases)})
            return 0
        if ctx.json_output:
            emit_result(ctx, message="aliases", data={"aliases": dict(ctx.aliases)})
        elif not ctx.aliases:
            print("No aliases defined")
        else:
            print("Aliases:")
            for alias, command in sorted(ctx.aliases.items()):
                print(f"  {alias}={command}")
        return 0
