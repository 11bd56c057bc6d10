"""Reply parsing for the VCML session protocol.

Replies are comma separated ``key:value`` records, optionally prefixed with
an ``OK`` marker.  A backslash escapes the following character so values can
carry literal commas::

    OK,name:top.cpu,child:core0,child:core1
    OK,value:a\\,b
    ERROR,unknown command
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

OK_MARKER = "OK"
ERROR_PREFIX = "ERROR,"
SEPARATOR = ","
ESCAPE = "\\"


class SessionError(RuntimeError):
    """Base class for errors raised by vcmlsession."""


class ProtocolError(SessionError):
    """Raised when a reply is missing, flagged as error or malformed."""

    def __init__(self, message: str, *, command: Optional[str] = None, remote_error: Optional[str] = None) -> None:
        super().__init__(message)
        self.command = command
        self.remote_error = remote_error


def escape(text: str) -> str:
    """Escape backslashes and commas so *text* survives tokenization."""
    return text.replace(ESCAPE, ESCAPE + ESCAPE).replace(SEPARATOR, ESCAPE + SEPARATOR)


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    buffer: List[str] = []
    pending_escape = False
    for ch in text:
        if pending_escape:
            buffer.append(ch)
            pending_escape = False
        elif ch == ESCAPE:
            pending_escape = True
        elif ch == SEPARATOR:
            tokens.append("".join(buffer))
            buffer = []
        else:
            buffer.append(ch)
    if buffer:
        tokens.append("".join(buffer))
    return tokens


class Response:
    """Parsed reply to a single command."""

    __slots__ = ("_command", "_reply", "_entries")

    def __init__(self, command: str, raw: str) -> None:
        if not raw:
            raise ProtocolError(f"command '{command}' not supported", command=command)
        if raw.startswith(ERROR_PREFIX):
            remote = raw[len(ERROR_PREFIX):]
            raise ProtocolError(
                f"command '{command}' returned error: {remote}",
                command=command,
                remote_error=remote,
            )
        reply = raw
        if reply.startswith(OK_MARKER):
            reply = reply[len(OK_MARKER):]
        if reply.startswith(SEPARATOR):
            reply = reply[len(SEPARATOR):]

        entries: List[Tuple[str, str]] = []
        for token in _tokenize(reply):
            key, _, value = token.partition(":")
            entries.append((key, value))

        self._command = command
        self._reply = reply
        self._entries: Tuple[Tuple[str, str], ...] = tuple(entries)

    @property
    def command(self) -> str:
        return self._command

    @property
    def entries(self) -> Tuple[Tuple[str, str], ...]:
        return self._entries

    @property
    def text(self) -> str:
        """Reply text with escaped commas turned back into literal commas."""
        return self._reply.replace(ESCAPE + SEPARATOR, SEPARATOR)

    def values(self, key: str) -> List[str]:
        return [value for entry_key, value in self._entries if entry_key == key]

    def first(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for entry_key, value in self._entries:
            if entry_key == key:
                return value
        return default

    def keys(self) -> Sequence[str]:
        return list(dict.fromkeys(key for key, _ in self._entries))

    def __contains__(self, key: object) -> bool:
        return any(entry_key == key for entry_key, _ in self._entries)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Response(command={self._command!r}, entries={list(self._entries)!r})"


def parse(command: str, raw: str) -> Response:
    """Parse *raw* as the reply to *command*; raises ProtocolError."""
    return Response(command, raw)


__all__ = [
    "ESCAPE",
    "ProtocolError",
    "Response",
    "SessionError",
    "escape",
    "parse",
]
