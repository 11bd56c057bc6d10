"""Output helpers for vcml-explorer."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from vcmlsession import Module, Session

from .context import ExplorerContext


def _json_dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True)


def emit_result(ctx: ExplorerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit a successful command result."""
    if ctx.json_output:
        payload: Dict[str, Any] = {"status": "ok"}
        if data is not None:
            payload["result"] = data
        else:
            payload["message"] = message
        print(_json_dump(payload))
    else:
        print(message)


def emit_error(ctx: ExplorerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit an error message respecting JSON mode."""
    payload: Dict[str, Any] = {"status": "error", "error": message}
    if data:
        payload["details"] = dict(data)
    if ctx.json_output:
        print(_json_dump(payload))
    else:
        print(f"error: {message}")


def describe_session(session: Session) -> Dict[str, Any]:
    return {
        "uri": session.uri,
        "name": session.name,
        "user": session.user,
        "host": session.host,
        "port": session.port,
        "executable": session.executable,
        "state": session.state.value,
        "time": session.time,
    }


def describe_module(module: Module) -> Dict[str, Any]:
    return {
        "name": module.name,
        "path": module.full_name,
        "kind": module.kind,
        "children": [child.name for child in module.children],
        "attributes": list(module.attributes),
        "commands": list(module.commands),
    }


def render_session_table(sessions: Sequence[Session], *, current: Optional[Session] = None) -> None:
    """Print the known sessions, marking the current one."""
    if not sessions:
        print("  sessions: (none)")
        return
    header = "      #   State         Time (s)      User        Name              Endpoint"
    print("  sessions:")
    print(header)
    print("      " + "-" * (len(header) - 6))
    for index, session in enumerate(sessions, start=1):
        marker = "*" if current is not None and session == current else " "
        endpoint = f"{session.host}:{session.port}"
        row = (
            f"    {marker} {index:>2}  {session.state.value:<12}  {session.time:>12.9f}  "
            f"{session.user:<10}  {session.name:<16}  {endpoint}"
        )
        print(row)


def render_modules(modules: Iterable[Module], *, indent: str = "  ") -> None:
    for module in modules:
        kind = module.kind
        suffix = "/" if module.children else ""
        print(f"{indent}{module.name}{suffix:<2} [{kind}]")


__all__ = [
    "describe_module",
    "describe_session",
    "emit_error",
    "emit_result",
    "render_modules",
    "render_session_table",
]
