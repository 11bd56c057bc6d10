"""Command line tokenizing for vcml-explorer."""

from __future__ import annotations

import shlex
from typing import List

PARSE_ERROR = "#parse-error"


def split_command(line: str) -> List[str]:
    """Split a command line into argv tokens using shlex rules.

    Unbalanced quotes yield ``[line, "#parse-error:<reason>"]`` so callers can
    report the problem instead of dispatching a half-parsed command.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return []
    try:
        return shlex.split(text, comments=True, posix=True)
    except ValueError as exc:
        return [text, f"{PARSE_ERROR}:{exc}"]


def parse_error(argv: List[str]) -> str | None:
    if len(argv) == 2 and argv[1].startswith(PARSE_ERROR):
        return argv[1].partition(":")[2] or "invalid command line"
    return None
