"""Session change events and their fan-out to subscribers.

The registry publishes one :class:`SessionEvent` per change.  Publishing only
enqueues; handlers run when the bus is pumped, either explicitly by the
caller (CLI loop) or by the background dispatcher started with
:meth:`EventBus.start`.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

SESSION_ADDED = "added"
SESSION_REMOVED = "removed"
SESSION_UPDATED = "updated"
SESSION_SELECTED = "selected"
SESSION_ERROR = "error"

EVENT_KINDS = (SESSION_ADDED, SESSION_REMOVED, SESSION_UPDATED, SESSION_SELECTED, SESSION_ERROR)

EventHandler = Callable[["SessionEvent"], None]


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    uri: str
    name: str = ""
    state: str = "disconnected"
    time: float = 0.0
    message: Optional[str] = None


def _ignore(event: SessionEvent) -> None:
    return None


@dataclass
class EventSubscription:
    """Filter plus bounded backlog for one handler.

    ``kinds`` and ``uri`` narrow what is accepted; an empty filter accepts
    everything.  When the backlog holds ``queue_size`` events the oldest is
    discarded.
    """

    kinds: Optional[Iterable[str]] = None
    uri: Optional[str] = None
    queue_size: int = 256
    handler: EventHandler = _ignore
    _backlog: Deque[SessionEvent] = field(init=False, repr=False)
    _guard: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        if self.kinds is not None:
            self.kinds = frozenset(self.kinds)
        self._backlog = deque(maxlen=max(1, self.queue_size))

    def matches(self, event: SessionEvent) -> bool:
        if self.kinds and event.kind not in self.kinds:
            return False
        return self.uri is None or event.uri == self.uri

    def push(self, event: SessionEvent) -> None:
        with self._guard:
            if len(self._backlog) == self._backlog.maxlen:
                logger.debug("subscription backlog full, dropping %s event", self._backlog[0].kind)
            self._backlog.append(event)

    def dispatch(self) -> int:
        """Run the handler over the backlog; returns how many events were taken."""
        with self._guard:
            batch = list(self._backlog)
            self._backlog.clear()
        for event in batch:
            try:
                self.handler(event)
            except Exception:
                logger.exception("session event handler failed for %s", event.kind)
        return len(batch)


class EventBus:
    """Broadcasts session events to every matching subscription."""

    def __init__(self) -> None:
        self._subscriptions: Dict[int, EventSubscription] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()
        self._dispatcher: Optional[threading.Thread] = None
        self._halt = threading.Event()
        self._interval = 0.01

    def subscribe(self, subscription: EventSubscription) -> int:
        with self._lock:
            token = next(self._tokens)
            self._subscriptions[token] = subscription
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscriptions.pop(token, None)

    def _snapshot(self) -> Iterable[EventSubscription]:
        with self._lock:
            return tuple(self._subscriptions.values())

    def publish(self, event: SessionEvent) -> None:
        for subscription in self._snapshot():
            if subscription.matches(event):
                subscription.push(event)

    def pump(self) -> int:
        """Deliver everything queued so far; returns the number of deliveries."""
        return sum(subscription.dispatch() for subscription in self._snapshot())

    @property
    def running(self) -> bool:
        return self._dispatcher is not None and self._dispatcher.is_alive()

    def start(self, interval: float = 0.01) -> None:
        """Pump the bus every *interval* seconds from a daemon thread."""
        self._interval = interval
        if self.running:
            return
        self._halt.clear()
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name="vcml-event-bus", daemon=True)
        self._dispatcher.start()

    def stop(self) -> None:
        self._halt.set()
        dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None and dispatcher.is_alive():
            dispatcher.join(timeout=0.5)

    def _dispatch_loop(self) -> None:
        while not self._halt.wait(self._interval):
            self.pump()
        self.pump()


__all__ = [
    "EVENT_KINDS",
    "EventBus",
    "EventSubscription",
    "SESSION_ADDED",
    "SESSION_ERROR",
    "SESSION_REMOVED",
    "SESSION_SELECTED",
    "SESSION_UPDATED",
    "SessionEvent",
]
