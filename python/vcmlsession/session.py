"""Simulator session built on top of the vcmlsession transport."""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .cache import HierarchyCache
from .hierarchy import Module
from .response import ProtocolError, Response, SessionError
from .transport import Transport, TransportConfig, open_transport


logger = logging.getLogger(__name__)

UNKNOWN = "<unknown>"

# command verbs
TIME = "t"
CONT = "c"
STEP = "s"
QUIT = "x"

INTERRUPT = "a"
STOP_ACK = "OK"

TransportFactory = Callable[[TransportConfig], Transport]


class InvalidURIError(SessionError, ValueError):
    """Raised when a session URI cannot be parsed."""


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class SessionURI:
    host: str
    port: int
    user: str = UNKNOWN
    executable: str = UNKNOWN

    @property
    def name(self) -> str:
        if self.executable == UNKNOWN:
            return UNKNOWN
        segments = [segment for segment in re.split(r"[\\/]", self.executable) if segment]
        return segments[-1] if segments else UNKNOWN


def parse_uri(uri: str) -> SessionURI:
    """Split ``host:port[:user[:executable]]``; the executable may contain colons."""
    info = uri.strip().split(":", 3)
    if len(info) < 2 or not info[0]:
        raise InvalidURIError(f"invalid URI: {uri}")
    if not (info[1].isascii() and info[1].isdigit()):
        raise InvalidURIError(f"invalid URI: {uri}")
    port = int(info[1])
    if port <= 0:
        raise InvalidURIError(f"invalid URI: {uri}")
    user = info[2] if len(info) > 2 and info[2] else UNKNOWN
    executable = info[3] if len(info) > 3 and info[3] else UNKNOWN
    return SessionURI(host=info[0], port=port, user=user, executable=executable)


class Session:
    """One logical connection to a running simulator, identified by its URI."""

    def __init__(
        self,
        uri: str,
        *,
        transport_factory: Optional[TransportFactory] = None,
        transport_config: Optional[TransportConfig] = None,
    ) -> None:
        info = parse_uri(uri)
        self.uri = uri.strip()
        self.host = info.host
        self.port = info.port
        self.user = info.user
        self.executable = info.executable
        self.name = info.name
        self._transport_factory: TransportFactory = transport_factory or open_transport
        self._transport_config = dataclasses.replace(
            transport_config or TransportConfig(),
            host=self.host,
            port=self.port,
        )
        self._transport: Optional[Transport] = None
        self._hierarchy: HierarchyCache[Module] = HierarchyCache()
        self._running = False
        self._time = 0.0

    #
    # State predicates
    #
    @property
    def is_connected(self) -> bool:
        return self._transport is not None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> SessionState:
        if not self.is_connected:
            return SessionState.DISCONNECTED
        return SessionState.RUNNING if self._running else SessionState.IDLE

    @property
    def time(self) -> float:
        """Last known simulation time in seconds."""
        return self._time

    @property
    def hierarchy_generation(self) -> int:
        return self._hierarchy.generation

    #
    # Lifecycle
    #
    def connect(self) -> None:
        if self.is_connected:
            return
        transport = self._transport_factory(self._transport_config)
        self._transport = transport
        self._running = False
        try:
            self._update_time()
        except Exception:
            self._transport = None
            transport.close()
            raise
        logger.info("connected to %s (t=%ss)", self, self._time)

    def disconnect(self) -> None:
        transport = self._transport
        if transport is None:
            return
        self._hierarchy.invalidate()
        self._transport = None
        self._running = False
        transport.close()
        logger.info("disconnected from %s", self)

    def continue_simulation(self) -> None:
        if not self.is_connected or self.is_running:
            return
        self._require_transport().send(CONT)
        self._running = True
        self._hierarchy.invalidate()
        logger.info("%s running", self)

    def stop_simulation(self) -> None:
        if not self.is_connected or not self.is_running:
            return
        transport = self._require_transport()
        transport.send_byte(INTERRUPT)
        reply = transport.recv()
        if reply != STOP_ACK:
            raise ProtocolError(
                f"simulator responded with error: {reply}",
                command=INTERRUPT,
                remote_error=reply,
            )
        self._running = False
        self._update_time()
        logger.info("%s stopped at t=%ss", self, self._time)

    def step_simulation(self) -> None:
        if not self.is_connected or self.is_running:
            return
        transport = self._require_transport()
        Response(STEP, transport.command(STEP))
        self._hierarchy.invalidate()
        self._update_time()
        logger.debug("%s stepped to t=%ss", self, self._time)

    def quit_simulation(self) -> None:
        if not self.is_connected:
            return
        if self.is_running:
            self.stop_simulation()
        self._require_transport().send(QUIT)
        self._running = False
        logger.info("%s quit", self)
        self.disconnect()

    def refresh(self) -> None:
        """Drop the cached hierarchy and re-read the simulation time."""
        if not self.is_connected or self.is_running:
            return
        self._hierarchy.invalidate()
        self._update_time()

    #
    # Hierarchy access
    #
    def get_top_level_objects(self) -> Optional[Tuple[Module, ...]]:
        if not self.is_connected or self.is_running:
            return None
        return self._root().children

    def find_object(self, name: str) -> Optional[Module]:
        if not self.is_connected or self.is_running:
            return None
        return self._root().find_child(name)

    #
    # Internal helpers
    #
    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise SessionError(f"session {self.uri} is not connected")
        return self._transport

    def _root(self) -> Module:
        transport = self._require_transport()
        return self._hierarchy.get(lambda: Module(transport, None, ""))

    def _update_time(self) -> None:
        response = Response(TIME, self._require_transport().command(TIME))
        try:
            self._time = float(response.text)
        except ValueError as exc:
            raise ProtocolError(
                f"command '{TIME}' returned invalid time: {response.text}",
                command=TIME,
            ) from exc

    #
    # Identity
    #
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Session):
            return NotImplemented
        return self.uri == other.uri

    def __hash__(self) -> int:
        return hash(self.uri)

    def __str__(self) -> str:
        return f"{self.user}/{self.name} at {self.host}:{self.port}"

    def __repr__(self) -> str:
        return f"Session({self.uri!r}, state={self.state.value})"


__all__ = [
    "InvalidURIError",
    "Session",
    "SessionState",
    "SessionURI",
    "TransportFactory",
    "parse_uri",
]
