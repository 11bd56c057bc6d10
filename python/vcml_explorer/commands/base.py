"""Command base classes for vcml-explorer."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from vcmlsession import Session

from ..context import ExplorerContext
from ..output import emit_error
from ..parser import split_command


@dataclass
class Command:
    """Abstract command description."""

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)

    def run(self, ctx: ExplorerContext, argv: List[str]) -> int:
        raise NotImplementedError("Command must implement run()")

    def format_help(self) -> str:
        text = f"{self.name:<12} {self.description}"
        if self.aliases:
            text += f" (aliases: {', '.join(self.aliases)})"
        return text

    def parse(self, line: str) -> List[str]:
        return split_command(line)


def build_parser(prog: str) -> argparse.ArgumentParser:
    return argparse.ArgumentParser(prog=prog, add_help=False)


def target_session(ctx: ExplorerContext, selector: Optional[str]) -> Optional[Session]:
    """Resolve *selector* (or the current session), reporting failures."""
    session = ctx.resolve_session(selector)
    if session is None:
        if selector:
            emit_error(ctx, message=f"no session matches '{selector}'")
        else:
            emit_error(ctx, message="no session selected (use 'sessions' and 'select')")
    return session


def report_failure(ctx: ExplorerContext, action: str) -> int:
    assert ctx.registry is not None
    reason = ctx.registry.last_error or "unknown error"
    emit_error(ctx, message=f"{action} failed: {reason}")
    return 2
