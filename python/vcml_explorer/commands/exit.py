"""Exit command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ExplorerContext


class ExitCommand(Command):
    def __init__(self) -> None:
        super().__init__("exit", "Disconnect all sessions and leave the explorer", aliases=("quit", "q"))

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        ctx.shutdown()
        raise SystemExit(0)
