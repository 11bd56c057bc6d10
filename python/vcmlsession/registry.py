"""Session registry: discovery, selection and the top-level error boundary."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from .discovery import ANNOUNCE_PREFIX, available_sessions, default_announce_dir
from .events import (
    SESSION_ADDED,
    SESSION_ERROR,
    SESSION_REMOVED,
    SESSION_SELECTED,
    SESSION_UPDATED,
    EventBus,
    SessionEvent,
)
from .hierarchy import Module
from .response import Response, SessionError
from .session import Session, TransportFactory
from .transport import TransportConfig


logger = logging.getLogger(__name__)

ENV_ANNOUNCE_DIR = "VCML_ANNOUNCE_DIR"
ENV_CONNECT_TIMEOUT = "VCML_CONNECT_TIMEOUT"
ENV_READ_TIMEOUT = "VCML_READ_TIMEOUT"


@dataclass
class RegistryConfig:
    announce_dir: Path = field(default_factory=default_announce_dir)
    prefix: str = ANNOUNCE_PREFIX
    connect_timeout: float = 2.0
    read_timeout: float = 5.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        env = os.environ if environ is None else environ
        config = cls()
        if env.get(ENV_ANNOUNCE_DIR):
            config.announce_dir = Path(env[ENV_ANNOUNCE_DIR]).expanduser()
        for name, attr in ((ENV_CONNECT_TIMEOUT, "connect_timeout"), (ENV_READ_TIMEOUT, "read_timeout")):
            raw = env.get(name)
            if not raw:
                continue
            try:
                setattr(config, attr, float(raw))
            except ValueError:
                logger.warning("ignoring invalid %s=%r", name, raw)
        return config

    def transport_config(self) -> TransportConfig:
        return TransportConfig(connect_timeout=self.connect_timeout, read_timeout=self.read_timeout)


class SessionRegistry:
    """Known sessions plus the current selection.

    ``add``, ``remove`` and ``select`` mutate the known set under one lock;
    events are published after the lock is released.  The ``*_session`` /
    ``*_simulation`` wrappers are the error boundary: any ``SessionError``
    disconnects and evicts the session and is reported through
    :meth:`report_error` instead of propagating.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        event_bus: Optional[EventBus] = None,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self.config = config or RegistryConfig()
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self._transport_factory = transport_factory
        self._sessions: List[Session] = []
        self._current: Optional[Session] = None
        self._lock = threading.RLock()
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Known set
    # ------------------------------------------------------------------
    @property
    def sessions(self) -> Tuple[Session, ...]:
        with self._lock:
            return tuple(self._sessions)

    @property
    def current(self) -> Optional[Session]:
        with self._lock:
            return self._current

    def get(self, uri: str) -> Optional[Session]:
        with self._lock:
            for session in self._sessions:
                if session.uri == uri:
                    return session
        return None

    def find_by_name(self, name: str) -> List[Session]:
        with self._lock:
            return [session for session in self._sessions if session.name == name]

    def create_session(self, uri: str) -> Session:
        return Session(
            uri,
            transport_factory=self._transport_factory,
            transport_config=self.config.transport_config(),
        )

    def refresh(self) -> List[Session]:
        """Scan the announce directory and add sessions not seen before."""
        found = available_sessions(self.config.announce_dir, self.config.prefix, self.create_session)
        added: List[Session] = []
        for session in found:
            member = self.add(session)
            if member is session:
                added.append(session)
        logger.debug("refresh found %d session(s), %d new", len(found), len(added))
        return added

    def add(self, session: Session) -> Session:
        """Add *session*; returns the member instance when already known."""
        with self._lock:
            for known in self._sessions:
                if known == session:
                    return known
            self._sessions.append(session)
        logger.info("session added: %s", session)
        self._publish(SESSION_ADDED, session)
        return session

    def add_remote(self, uri: str, *, connect: bool = False) -> Session:
        """Add a session by URI; raises InvalidURIError for malformed URIs."""
        session = self.add(self.create_session(uri))
        if connect:
            self.connect_session(session)
        return session

    def select(self, session: Optional[Session]) -> None:
        if session is None:
            return
        with self._lock:
            member = self._member(session)
            if member is None:
                self._sessions.append(session)
                member = session
                added = True
            else:
                added = False
            self._current = member
        if added:
            self._publish(SESSION_ADDED, member)
        self._publish(SESSION_SELECTED, member)

    def remove(self, session: Session) -> None:
        try:
            if session.is_running:
                session.stop_simulation()
        except SessionError as exc:
            self.report_error(session, exc)
            return
        session.disconnect()
        self._discard(session)

    def close(self) -> None:
        """Disconnect every known session and forget them."""
        with self._lock:
            sessions = list(self._sessions)
            self._sessions.clear()
            self._current = None
        for session in sessions:
            session.disconnect()

    # ------------------------------------------------------------------
    # Error boundary wrappers
    # ------------------------------------------------------------------
    def connect_session(self, session: Session) -> bool:
        try:
            if session.is_connected:
                return True
            session.connect()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def disconnect_session(self, session: Session) -> bool:
        try:
            if session.is_running:
                session.stop_simulation()
            session.disconnect()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def start_simulation(self, session: Session) -> bool:
        try:
            if session.is_running:
                return True
            if not session.is_connected:
                session.connect()
            session.continue_simulation()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def stop_simulation(self, session: Session) -> bool:
        try:
            if not session.is_connected or not session.is_running:
                return True
            session.stop_simulation()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def step_simulation(self, session: Session) -> bool:
        try:
            if session.is_running:
                return True
            if not session.is_connected:
                session.connect()
            session.step_simulation()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def quit_simulation(self, session: Session) -> bool:
        """Quit the simulator process and retire its session."""
        try:
            if not session.is_connected:
                session.connect()
            session.quit_simulation()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._discard(session)
        return True

    def refresh_session(self, session: Session) -> bool:
        try:
            if not session.is_connected or session.is_running:
                return True
            session.refresh()
        except SessionError as exc:
            self.report_error(session, exc)
            return False
        self._publish(SESSION_UPDATED, session)
        return True

    def top_level_objects(self, session: Session) -> Optional[Tuple[Module, ...]]:
        try:
            if not session.is_connected:
                session.connect()
            return session.get_top_level_objects()
        except SessionError as exc:
            self.report_error(session, exc)
            return None

    def find_object(self, session: Session, name: str) -> Optional[Module]:
        try:
            if not session.is_connected:
                session.connect()
            return session.find_object(name)
        except SessionError as exc:
            self.report_error(session, exc)
            return None

    def execute(self, session: Session, module: Module, command: str, *args: str) -> Optional[Response]:
        try:
            return module.execute(command, *args)
        except SessionError as exc:
            self.report_error(session, exc)
            return None

    def report_error(self, session: Session, exc: BaseException) -> str:
        """Disconnect and evict *session*; returns the user-facing message."""
        message = str(exc)
        cause = exc.__cause__
        if cause is not None:
            message += f": {cause}"
        session.disconnect()
        self._discard(session)
        self.last_error = message
        logger.error("session error on %s: %s", session.uri, message)
        self._publish(SESSION_ERROR, session, message=message)
        return message

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _member(self, session: Session) -> Optional[Session]:
        for known in self._sessions:
            if known == session:
                return known
        return None

    def _discard(self, session: Session) -> None:
        with self._lock:
            member = self._member(session)
            if member is None:
                return
            self._sessions.remove(member)
            if self._current == member:
                self._current = None
        logger.info("session removed: %s", member)
        self._publish(SESSION_REMOVED, member)

    def _publish(self, kind: str, session: Session, *, message: Optional[str] = None) -> None:
        event = SessionEvent(
            kind=kind,
            uri=session.uri,
            name=session.name,
            state=session.state.value,
            time=session.time,
            message=message,
        )
        try:
            self.event_bus.publish(event)
        except Exception:
            logger.exception("publishing %s event for %s failed", kind, session.uri)


__all__ = ["RegistryConfig", "SessionRegistry"]
