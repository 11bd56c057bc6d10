"""
Pytest configuration and fixtures for vcmlsession tests.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

import pytest

from vcmlsession import TransportConfig, TransportError

HIERARCHY_REPLIES: Dict[str, str] = {
    "l": "OK,kind:module,child:system,child:clock",
    "l,system": "OK,kind:module,child:cpu,child:mem",
    "l,system.cpu": "OK,kind:processor,attribute:clkrst,attribute:pc,command:dump,command:disas",
    "l,system.mem": "OK,kind:memory,attribute:size",
    "l,clock": "OK,kind:clock",
}

Reply = Union[str, Sequence[str]]


class FakeTransport:
    """Scripted stand-in for RSPTransport.

    ``replies`` maps a command verb to a reply string or a list of replies
    consumed in order (the last one repeats).  Verbs without a reply get
    ``"OK"``.
    """

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, *, recv_replies: Sequence[str] = ("OK",)) -> None:
        self.replies: Dict[str, List[str]] = {}
        for verb, reply in (replies or {}).items():
            self.replies[verb] = [reply] if isinstance(reply, str) else list(reply)
        self.recv_replies = list(recv_replies)
        self.log: List[tuple] = []
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def _next(self, queue: List[str], default: str) -> str:
        if not queue:
            return default
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def command(self, verb: str) -> str:
        self.log.append(("command", verb))
        reply = self._next(self.replies.get(verb, []), "OK")
        if reply == "!timeout":
            raise TransportError("read from fake timed out", command=verb)
        return reply

    def send(self, verb: str) -> None:
        self.log.append(("send", verb))

    def send_byte(self, value) -> None:
        self.log.append(("byte", value))

    def recv(self) -> str:
        self.log.append(("recv", None))
        return self._next(self.recv_replies, "OK")

    def close(self) -> None:
        self.close_count += 1

    def verbs(self, kind: Optional[str] = None) -> List[str]:
        return [verb for entry_kind, verb in self.log if kind is None or entry_kind == kind]


class FakeTransportFactory:
    """Records every transport it opens; can be told to refuse connections."""

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, **kwargs) -> None:
        self.replies = dict(HIERARCHY_REPLIES)
        self.replies.setdefault("t", "OK,0.0")
        self.replies.update(replies or {})
        self.kwargs = kwargs
        self.opened: List[FakeTransport] = []
        self.configs: List[TransportConfig] = []
        self.refuse = False

    def __call__(self, config: TransportConfig) -> FakeTransport:
        self.configs.append(config)
        if self.refuse:
            raise TransportError(f"connect to {config.host}:{config.port} failed: refused")
        transport = FakeTransport(self.replies, **self.kwargs)
        self.opened.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.opened[-1]


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory({"t": ["OK,0.0", "OK,0.000001", "OK,0.000002", "OK,0.000003"]})


@pytest.fixture
def make_factory():
    """Build a FakeTransportFactory with extra/overridden replies."""

    def _make(replies: Optional[Dict[str, Reply]] = None, **kwargs) -> FakeTransportFactory:
        return FakeTransportFactory(replies, **kwargs)

    return _make


@pytest.fixture
def make_transport():
    def _make(replies: Optional[Dict[str, Reply]] = None, *, hierarchy: bool = False, **kwargs) -> FakeTransport:
        merged: Dict[str, Reply] = dict(HIERARCHY_REPLIES) if hierarchy else {}
        merged.update(replies or {})
        return FakeTransport(merged, **kwargs)

    return _make
