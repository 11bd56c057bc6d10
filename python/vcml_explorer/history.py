"""Persistent command history for the explorer REPL."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

LOGGER = logging.getLogger("vcml_explorer.history")


class HistoryStore:
    """Line-per-entry history file holding at most ``limit`` commands.

    New entries are appended to the file; it is rewritten only when the
    in-memory list had to drop its oldest entries.
    """

    def __init__(self, path: Optional[str], *, limit: int = 1000) -> None:
        self.limit = max(1, int(limit or 1))
        self.path = Path(path).expanduser() if path else None
        self._unterminated = False
        self._oversized = False
        self.entries: List[str] = self._read() if self.path else []

    def _read(self) -> List[str]:
        assert self.path is not None
        if not self.path.exists():
            return []
        try:
            data = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.debug("ignoring unreadable history %s: %s", self.path, exc)
            return []
        self._unterminated = bool(data) and not data.endswith("\n")
        lines = [line.strip() for line in data.splitlines() if line.strip()]
        self._oversized = len(lines) > self.limit
        return lines[-self.limit :]

    def append(self, line: str) -> None:
        entry = line.strip()
        if not entry or (self.entries and self.entries[-1] == entry):
            return
        self.entries.append(entry)
        overflow = len(self.entries) - self.limit
        if overflow > 0 or self._oversized:
            del self.entries[: max(0, overflow)]
            self._write("w", self.entries)
            self._oversized = False
        else:
            self._write("a", [entry])

    def extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.append(line)

    def _write(self, mode: str, lines: List[str]) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open(mode, encoding="utf-8") as handle:
                if mode == "a" and self._unterminated:
                    handle.write("\n")
                handle.writelines(f"{line}\n" for line in lines)
            self._unterminated = False
        except OSError as exc:
            LOGGER.debug("history %s not saved: %s", self.path, exc)

    def snapshot(self) -> List[str]:
        return list(self.entries)
