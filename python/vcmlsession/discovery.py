"""Announcement file discovery.

A simulator announces itself at startup by writing
``<announce dir>/vcml_session_<pid>`` whose first line is its session URI.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Union

from .response import SessionError
from .session import Session

logger = logging.getLogger(__name__)

ANNOUNCE_PREFIX = "vcml_session"

PathLike = Union[str, Path]
SessionFactory = Callable[[str], Session]


def default_announce_dir() -> Path:
    return Path(tempfile.gettempdir())


def announcement_pattern(prefix: str = ANNOUNCE_PREFIX) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(prefix)}_[0-9]+$")


def announcement_path(directory: PathLike, pid: int, prefix: str = ANNOUNCE_PREFIX) -> Path:
    return Path(directory) / f"{prefix}_{int(pid)}"


def scan_announcements(directory: PathLike, prefix: str = ANNOUNCE_PREFIX) -> List[str]:
    """Return the URIs announced in *directory*, ordered by file name."""
    root = Path(directory)
    pattern = announcement_pattern(prefix)
    try:
        candidates = sorted(entry for entry in root.iterdir() if pattern.match(entry.name))
    except FileNotFoundError:
        logger.debug("announce directory %s does not exist", root)
        return []
    except OSError as exc:
        logger.warning("cannot scan announce directory %s: %s", root, exc)
        return []
    uris: List[str] = []
    for path in candidates:
        try:
            with path.open("r", encoding="utf-8") as handle:
                line = handle.readline().strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("cannot read announcement %s: %s", path, exc)
            continue
        if line:
            uris.append(line)
        else:
            logger.warning("announcement %s is empty", path)
    return uris


def available_sessions(
    directory: Optional[PathLike] = None,
    prefix: str = ANNOUNCE_PREFIX,
    session_factory: SessionFactory = Session,
) -> List[Session]:
    """Build one Session per distinct announced URI; malformed ones are skipped."""
    sessions: List[Session] = []
    for uri in scan_announcements(directory or default_announce_dir(), prefix):
        try:
            session = session_factory(uri)
        except SessionError as exc:
            logger.warning("skipping announced session: %s", exc)
            continue
        if session not in sessions:
            sessions.append(session)
    return sessions


def announce(directory: PathLike, uri: str, pid: Optional[int] = None, prefix: str = ANNOUNCE_PREFIX) -> Path:
    """Write an announcement file atomically and return its path."""
    target = announcement_path(directory, os.getpid() if pid is None else pid, prefix)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(uri + "\n")
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


def retract(directory: PathLike, pid: Optional[int] = None, prefix: str = ANNOUNCE_PREFIX) -> bool:
    target = announcement_path(directory, os.getpid() if pid is None else pid, prefix)
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    return True


__all__ = [
    "ANNOUNCE_PREFIX",
    "announce",
    "announcement_path",
    "announcement_pattern",
    "available_sessions",
    "default_announce_dir",
    "retract",
    "scan_announcements",
]
