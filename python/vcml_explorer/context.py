"""Explorer context and session helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from vcmlsession import EventSubscription, RegistryConfig, Session, SessionError, SessionEvent, SessionRegistry

LOGGER = logging.getLogger("vcml_explorer.context")


@dataclass
class ExplorerContext:
    """Holds shared CLI explorer state."""

    config: RegistryConfig = field(default_factory=RegistryConfig.from_env)
    json_output: bool = False
    registry: Optional[SessionRegistry] = None
    aliases: Dict[str, str] = field(default_factory=dict)
    _notifications: List[SessionEvent] = field(default_factory=list, init=False, repr=False)
    _subscription: Optional[int] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.registry is None:
            self.registry = SessionRegistry(self.config)
        self._subscription = self.registry.event_bus.subscribe(
            EventSubscription(handler=self._notifications.append)
        )

    @property
    def current(self) -> Optional[Session]:
        assert self.registry is not None
        return self.registry.current

    def resolve_session(self, selector: Optional[str]) -> Optional[Session]:
        """Look up a session by 1-based index, URI or display name.

        Without *selector* the current session is returned.
        """
        assert self.registry is not None
        if not selector:
            return self.registry.current
        sessions = self.registry.sessions
        if selector.isdigit():
            index = int(selector)
            if 1 <= index <= len(sessions):
                return sessions[index - 1]
        session = self.registry.get(selector)
        if session is not None:
            return session
        matches = self.registry.find_by_name(selector)
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            LOGGER.debug("ambiguous session name %s (%d matches)", selector, len(matches))
        return None

    def drain_notifications(self) -> List[SessionEvent]:
        assert self.registry is not None
        self.registry.event_bus.pump()
        events = list(self._notifications)
        self._notifications.clear()
        return events

    def shutdown(self) -> None:
        registry = self.registry
        if registry is None:
            return
        if self._subscription is not None:
            registry.event_bus.unsubscribe(self._subscription)
            self._subscription = None
        registry.close()

    def resolve_alias(self, name: str) -> str:
        return self.aliases.get(name, name)

    def set_alias(self, alias: str, command: str) -> None:
        if alias == command:
            self.aliases.pop(alias, None)
            return
        self.aliases[alias] = command

    def session_completions(self, prefix: str) -> List[str]:
        assert self.registry is not None
        names = []
        for session in self.registry.sessions:
            names.append(session.uri)
            if session.name != "<unknown>":
                names.append(session.name)
        return [name for name in dict.fromkeys(names) if name.startswith(prefix)]

    def object_completions(self, prefix: str) -> List[str]:
        """Dotted object paths below the current session matching *prefix*."""
        session = self.current
        if session is None or not session.is_connected or session.is_running:
            return []
        parent_path, _, leaf = prefix.rpartition(".")
        try:
            parent = session.find_object(parent_path)
            children = parent.children if parent is not None else ()
        except SessionError as exc:
            assert self.registry is not None
            self.registry.report_error(session, exc)
            return []
        head = f"{parent_path}." if parent_path else ""
        return [head + child.name for child in children if child.name.startswith(leaf)]
