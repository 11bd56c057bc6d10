"""prompt_toolkit completer for vcml-explorer."""

from __future__ import annotations

import shlex
from typing import Iterable, List

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from .commands import CommandRegistry
from .context import ExplorerContext

SESSION_COMMANDS = {"select", "remove", "connect", "disconnect", "continue", "stop", "quit-sim", "status"}
OBJECT_COMMANDS = {"list", "exec"}


def _normalise_tokens(text: str) -> List[str]:
    if not text:
        return []
    try:
        tokens = shlex.split(text, posix=True)
        trailing = text[-1].isspace()
    except ValueError:
        tokens = text.strip().split()
        trailing = text.endswith((" ", "\t"))
    if trailing:
        tokens.append("")
    return tokens


class ExplorerCompleter(Completer):
    """Completes command names, session names and dotted object paths."""

    def __init__(self, ctx: ExplorerContext, registry: CommandRegistry) -> None:
        self.ctx = ctx
        self.registry = registry

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        tokens = _normalise_tokens(document.text_before_cursor)
        if len(tokens) <= 1:
            prefix = tokens[0] if tokens else ""
            for entry in self._filter(self.registry.names(), prefix):
                yield Completion(entry, start_position=-len(prefix))
            return
        prefix = tokens[-1]
        command = self.registry.get(self.ctx.resolve_alias(tokens[0]))
        if command is None:
            return
        candidates: List[str] = []
        if command.name in SESSION_COMMANDS and len(tokens) == 2:
            candidates = self.ctx.session_completions(prefix)
        elif command.name in OBJECT_COMMANDS and len(tokens) == 2 and not prefix.startswith("-"):
            candidates = self.ctx.object_completions(prefix)
        for entry in self._filter(candidates, prefix):
            yield Completion(entry, start_position=-len(prefix))

    @staticmethod
    def _filter(candidates: Iterable[str], prefix: str) -> List[str]:
        return sorted(dict.fromkeys(c for c in candidates if c.startswith(prefix)))


__all__ = ["ExplorerCompleter"]
