"""Command registry for vcml-explorer."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .alias import AliasCommand
from .base import Command
from .connect import ConnectCommand, DisconnectCommand
from .control import ContinueCommand, QuitSimulationCommand, StepCommand, StopCommand
from .exit import ExitCommand
from .help import HelpCommand
from .objects import ExecCommand, ListCommand
from .sessions import AddCommand, RemoveCommand, SelectCommand, SessionsCommand
from .status import StatusCommand


class CommandRegistry:
    """Stores the known commands and resolves aliases."""

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._ordered: List[Command] = []

    def register(self, command: Command) -> None:
        self._ordered.append(command)
        self._commands[command.name] = command
        for alias in command.aliases:
            self._commands[alias] = command

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def list_commands(self) -> Iterable[Command]:
        return self._ordered

    def names(self) -> List[str]:
        return sorted(self._commands)


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    commands = [
        HelpCommand(),
        AliasCommand(),
        SessionsCommand(),
        AddCommand(),
        SelectCommand(),
        RemoveCommand(),
        ConnectCommand(),
        DisconnectCommand(),
        StatusCommand(),
        ContinueCommand(),
        StopCommand(),
        StepCommand(),
        QuitSimulationCommand(),
        ListCommand(),
        ExecCommand(),
        ExitCommand(),
    ]
    for command in commands:
        registry.register(command)
        bind = getattr(command, "bind", None)
        if callable(bind):
            bind(registry)
    return registry


__all__ = ["Command", "CommandRegistry", "build_registry"]
