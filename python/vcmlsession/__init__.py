"""
vcmlsession - client toolkit for the VCML session protocol.

This package is the common surface for all session clients (CLI explorer,
automation).  It discovers announced simulators, drives their run/stop/step
state machine and parses structured replies.  Each module is implemented in
its own file to keep responsibilities clear:

    response.py   → reply parsing and error types
    transport.py  → connection & packet framing
    session.py    → per-simulator state machine
    hierarchy.py  → lazily loaded object tree
    cache.py      → invalidation-driven hierarchy cache
    events.py     → session change fan-out
    discovery.py  → announcement file scanning
    registry.py   → known sessions, selection, error boundary
"""

from .response import ProtocolError, Response, SessionError, escape, parse  # noqa: F401
from .transport import RSPTransport, Transport, TransportConfig, TransportError, open_transport  # noqa: F401
from .cache import HierarchyCache  # noqa: F401
from .hierarchy import Module  # noqa: F401
from .session import InvalidURIError, Session, SessionState, SessionURI, parse_uri  # noqa: F401
from .events import EventBus, EventSubscription, SessionEvent  # noqa: F401
from .discovery import ANNOUNCE_PREFIX, announce, available_sessions, default_announce_dir, retract  # noqa: F401
from .registry import RegistryConfig, SessionRegistry  # noqa: F401

__all__ = [
    "ANNOUNCE_PREFIX",
    "EventBus",
    "EventSubscription",
    "HierarchyCache",
    "InvalidURIError",
    "Module",
    "ProtocolError",
    "RSPTransport",
    "RegistryConfig",
    "Response",
    "Session",
    "SessionError",
    "SessionEvent",
    "SessionRegistry",
    "SessionState",
    "SessionURI",
    "Transport",
    "TransportConfig",
    "TransportError",
    "announce",
    "available_sessions",
    "default_announce_dir",
    "escape",
    "open_transport",
    "parse",
    "parse_uri",
    "retract",
]

__version__ = "0.1.0"
