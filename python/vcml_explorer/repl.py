"""Interactive REPL for vcml-explorer."""

from __future__ import annotations

import logging
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from vcmlsession import events

from .commands import CommandRegistry
from .commands.help import HelpCommand
from .completion import ExplorerCompleter
from .context import ExplorerContext
from .history import HistoryStore
from .parser import parse_error, split_command

LOGGER = logging.getLogger("vcml_explorer.repl")

CONTINUATION = "\\"


class ExplorerREPL:
    """prompt_toolkit REPL bound to a session registry.

    Lines ending in a backslash are joined with the next one before being
    dispatched.  Registry events collected while a command ran are printed
    after it finishes.
    """

    def __init__(
        self,
        ctx: ExplorerContext,
        registry: CommandRegistry,
        *,
        history_store: Optional[HistoryStore] = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.history_store = history_store
        self._pending: List[str] = []
        help_command = self.registry.get("help")
        if isinstance(help_command, HelpCommand):
            help_command.bind(registry)

    def prompt_text(self) -> str:
        if self._pending:
            return "...> "
        session = self.ctx.current
        if session is None:
            return "vcml> "
        return f"vcml[{session.name}:{session.state.value}]> "

    def toolbar_text(self) -> str:
        assert self.ctx.registry is not None
        known = len(self.ctx.registry.sessions)
        session = self.ctx.current
        if session is None:
            return f" {known} session(s) known, none selected"
        return f" {known} session(s) known | {session.uri} t={session.time:.9f}s"

    def run(self) -> int:
        history = InMemoryHistory()
        for entry in self.history_store.snapshot() if self.history_store else ():
            history.append_string(entry)
        prompt = PromptSession(
            history=history,
            completer=ExplorerCompleter(self.ctx, self.registry),
            complete_while_typing=False,
            bottom_toolbar=self.toolbar_text,
        )
        while True:
            try:
                with patch_stdout():
                    line = prompt.prompt(self.prompt_text)
            except KeyboardInterrupt:
                self._pending.clear()
                continue
            except EOFError:
                print()
                self.ctx.shutdown()
                return 0
            payload = self.feed(line)
            if payload is None:
                continue
            if self.history_store:
                self.history_store.append(payload)
            self.dispatch(payload)

    def feed(self, line: str) -> Optional[str]:
        """Collect continuation lines; returns the full command once complete."""
        text = line.rstrip()
        if text.endswith(CONTINUATION):
            self._pending.append(text[: -len(CONTINUATION)])
            return None
        if not self._pending:
            return line
        self._pending.append(text)
        joined = " ".join(part.strip() for part in self._pending)
        self._pending.clear()
        return joined

    def dispatch(self, line: str) -> int:
        argv = split_command(line)
        if not argv:
            return 0
        error = parse_error(argv)
        if error:
            print(f"Parse error: {error}")
            return 1
        name = self.ctx.resolve_alias(argv[0])
        command = self.registry.get(name)
        if command is None:
            print(f"Unknown command: {name}")
            return 1
        try:
            rc = command.run(self.ctx, argv[1:])
        except SystemExit:
            raise
        except Exception as exc:
            LOGGER.exception("command %s failed", name)
            print(f"Command '{name}' failed: {exc}")
            rc = 1
        self._report_events()
        return rc

    def _report_events(self) -> None:
        for event in self.ctx.drain_notifications():
            if event.kind == events.SESSION_REMOVED:
                print(f"note: session {event.name} ({event.uri}) removed")
            elif event.kind == events.SESSION_ERROR:
                LOGGER.debug("error event for %s: %s", event.uri, event.message)
