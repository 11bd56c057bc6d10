"""Object hierarchy exposed by an idle simulator.

Each :class:`Module` lazily issues a list command for its own full name::

    -> l,system.cpu
    <- OK,kind:processor,child:core0,child:core1,attribute:clock,command:dump

Handles become stale once the owning session invalidates its hierarchy
(continue, step, refresh); a fresh root is built on the next lookup.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .response import Response, escape
from .transport import Transport

logger = logging.getLogger(__name__)

LIST = "l"
EXEC = "e"
PATH_SEPARATOR = "."
DEFAULT_KIND = "module"


class Module:
    """Node of the simulation object tree."""

    def __init__(self, transport: Transport, parent: Optional["Module"], name: str) -> None:
        self._transport = transport
        self.parent = parent
        self.name = name
        self._loaded = False
        self._kind = DEFAULT_KIND
        self._children: Tuple[Module, ...] = ()
        self._attributes: Tuple[str, ...] = ()
        self._commands: Tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        if self.parent is None or not self.parent.full_name:
            return self.name
        return f"{self.parent.full_name}{PATH_SEPARATOR}{self.name}"

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def kind(self) -> str:
        self._load()
        return self._kind

    @property
    def children(self) -> Tuple["Module", ...]:
        self._load()
        return self._children

    @property
    def attributes(self) -> Tuple[str, ...]:
        self._load()
        return self._attributes

    @property
    def commands(self) -> Tuple[str, ...]:
        self._load()
        return self._commands

    def child(self, name: str) -> Optional["Module"]:
        for candidate in self.children:
            if candidate.name == name:
                return candidate
        return None

    def find_child(self, path: str) -> Optional["Module"]:
        """Resolve a dotted *path* relative to this module."""
        node: Module = self
        for part in (segment for segment in path.split(PATH_SEPARATOR) if segment):
            child = node.child(part)
            if child is None:
                return None
            node = child
        return node

    def execute(self, command: str, *args: str) -> Response:
        fields = [EXEC, escape(self.full_name), escape(command)]
        fields.extend(escape(str(arg)) for arg in args)
        verb = ",".join(fields)
        return Response(verb, self._transport.command(verb))

    def _load(self) -> None:
        if self._loaded:
            return
        verb = LIST if self.is_root else f"{LIST},{escape(self.full_name)}"
        response = Response(verb, self._transport.command(verb))
        self._kind = response.first("kind") or DEFAULT_KIND
        self._children = tuple(Module(self._transport, self, child) for child in response.values("child"))
        self._attributes = tuple(response.values("attribute"))
        self._commands = tuple(response.values("command"))
        self._loaded = True
        logger.debug("loaded %s (%d children)", self.full_name or "<root>", len(self._children))

    def __repr__(self) -> str:
        return f"Module({self.full_name or '<root>'!r})"


__all__ = ["Module"]
