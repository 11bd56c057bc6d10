"""
Transport layer for vcmlsession.

Responsibilities:
    * Define the command/response contract the session state machine
      consumes (``Transport``).
    * Provide a TCP implementation using remote serial protocol framing
      (``$payload#cs`` packets acknowledged with ``+``/``-``).
    * Bound every connect and read with a timeout and surface failures as
      ``TransportError``.
"""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

from .response import ProtocolError

logger = logging.getLogger(__name__)

PACKET_START = b"$"
PACKET_END = b"#"
ESCAPE_BYTE = b"}"
ACK = b"+"
NACK = b"-"
_RESERVED = frozenset(b"$#}*")


class TransportError(ProtocolError):
    """Raised when the transport cannot complete an operation."""


@dataclass
class TransportConfig:
    host: str = "127.0.0.1"
    port: int = 0
    connect_timeout: float = 2.0
    read_timeout: float = 5.0
    max_retransmits: int = 3


class Transport(Protocol):
    """Command/response contract consumed by :class:`~vcmlsession.session.Session`."""

    def command(self, verb: str) -> str:
        """Send *verb* and block for the full textual reply."""

    def send(self, verb: str) -> None:
        """Send *verb* without waiting for a structured reply."""

    def send_byte(self, value: Union[str, bytes]) -> None:
        """Send a single raw byte outside packet framing."""

    def recv(self) -> str:
        """Block for the next reply packet."""

    def close(self) -> None:
        """Release the connection; calling it twice is harmless."""


def checksum(payload: bytes) -> int:
    return sum(payload) & 0xFF


def escape_payload(payload: bytes) -> bytes:
    out = bytearray()
    for byte in payload:
        if byte in _RESERVED:
            out += ESCAPE_BYTE
            out.append(byte ^ 0x20)
        else:
            out.append(byte)
    return bytes(out)


def unescape_payload(data: bytes) -> bytes:
    out = bytearray()
    pending = False
    for byte in data:
        if pending:
            out.append(byte ^ 0x20)
            pending = False
        elif byte == ESCAPE_BYTE[0]:
            pending = True
        else:
            out.append(byte)
    return bytes(out)


def encode_packet(payload: str) -> bytes:
    body = escape_payload(payload.encode("utf-8"))
    return PACKET_START + body + PACKET_END + f"{checksum(body):02x}".encode("ascii")


@dataclass
class RSPTransport:
    """Synchronous TCP transport speaking remote serial protocol framing."""

    config: TransportConfig = field(default_factory=TransportConfig)

    _sock: Optional[socket.socket] = field(init=False, default=None)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _buffer: bytearray = field(init=False, default_factory=bytearray)

    #
    # Connection lifecycle helpers
    #
    @property
    def state(self) -> str:
        return "connected" if self._sock else "disconnected"

    @property
    def endpoint(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    def open(self) -> "RSPTransport":
        if self._sock:
            return self
        try:
            sock = socket.create_connection(
                (self.config.host, self.config.port),
                timeout=self.config.connect_timeout,
            )
            sock.settimeout(self.config.read_timeout)
        except OSError as exc:
            raise TransportError(f"connect to {self.endpoint} failed: {exc}") from exc
        self._sock = sock
        self._buffer.clear()
        logger.debug("connected to %s", self.endpoint)
        return self

    def close(self) -> None:
        sock = self._sock
        self._sock = None
        self._buffer.clear()
        if sock is None:
            return
        try:
            sock.close()
        except OSError:
            pass
        logger.debug("closed connection to %s", self.endpoint)

    #
    # Transport contract
    #
    def command(self, verb: str) -> str:
        with self._lock:
            self._send_packet(verb)
            return self._recv_packet()

    def send(self, verb: str) -> None:
        with self._lock:
            self._send_packet(verb)

    def send_byte(self, value: Union[str, bytes]) -> None:
        data = value.encode("ascii") if isinstance(value, str) else bytes(value)
        if len(data) != 1:
            raise ValueError(f"expected a single byte, got {data!r}")
        with self._lock:
            self._write(data)

    def recv(self) -> str:
        with self._lock:
            return self._recv_packet()

    #
    # Internal helpers
    #
    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise TransportError(f"not connected to {self.endpoint}")
        return self._sock

    def _write(self, data: bytes) -> None:
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except OSError as exc:
            self.close()
            raise TransportError(f"send to {self.endpoint} failed: {exc}") from exc

    def _read_byte(self) -> int:
        if not self._buffer:
            sock = self._require_socket()
            try:
                chunk = sock.recv(4096)
            except socket.timeout as exc:
                self.close()
                raise TransportError(f"read from {self.endpoint} timed out") from exc
            except OSError as exc:
                self.close()
                raise TransportError(f"read from {self.endpoint} failed: {exc}") from exc
            if not chunk:
                self.close()
                raise TransportError(f"connection to {self.endpoint} closed by peer")
            self._buffer += chunk
        return self._buffer.pop(0)

    def _send_packet(self, payload: str) -> None:
        packet = encode_packet(payload)
        for _ in range(max(1, self.config.max_retransmits + 1)):
            logger.debug("-> %s", payload)
            self._write(packet)
            ack = self._read_byte()
            if ack == ACK[0]:
                return
            if ack != NACK[0]:
                raise TransportError(f"unexpected acknowledgement {bytes([ack])!r} for '{payload}'")
        raise TransportError(f"packet '{payload}' not acknowledged by {self.endpoint}")

    def _recv_packet(self) -> str:
        for _ in range(max(1, self.config.max_retransmits + 1)):
            while self._read_byte() != PACKET_START[0]:
                pass
            body = bytearray()
            while True:
                byte = self._read_byte()
                if byte == PACKET_END[0]:
                    break
                body.append(byte)
            digits = bytes([self._read_byte(), self._read_byte()])
            try:
                expected = int(digits, 16)
            except ValueError:
                expected = -1
            if expected != checksum(bytes(body)):
                logger.debug("checksum mismatch on packet from %s", self.endpoint)
                self._write(NACK)
                continue
            self._write(ACK)
            reply = unescape_payload(bytes(body)).decode("utf-8", errors="replace")
            logger.debug("<- %s", reply)
            return reply
        raise TransportError(f"too many corrupted packets from {self.endpoint}")


def open_transport(config: TransportConfig) -> RSPTransport:
    """Create and connect an :class:`RSPTransport`."""
    return RSPTransport(config).open()


__all__ = [
    "RSPTransport",
    "Transport",
    "TransportConfig",
    "TransportError",
    "checksum",
    "encode_packet",
    "escape_payload",
    "open_transport",
    "unescape_payload",
]
