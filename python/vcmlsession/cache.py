"""Cached session state helpers for vcmlsession."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


def _now() -> float:
    return time.time()


@dataclass
class HierarchyCache(Generic[T]):
    """Memoized value with an explicit invalidation signal.

    The value is rebuilt by ``loader`` on the first :meth:`get` after
    :meth:`invalidate`.  ``generation`` counts rebuilds so callers can tell
    whether a handle they hold predates the last invalidation.
    """

    _value: Optional[T] = field(default=None, init=False)
    _dirty: bool = field(default=True, init=False)
    generation: int = field(default=0, init=False)
    timestamp: Optional[float] = field(default=None, init=False)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def peek(self) -> Optional[T]:
        """Return the cached value without loading; None when dirty."""
        if self._dirty:
            return None
        return self._value

    def get(self, loader: Callable[[], T]) -> T:
        value = self._value
        if self._dirty or value is None:
            value = loader()
            self._value = value
            self._dirty = False
            self.generation += 1
            self.timestamp = _now()
        return value

    def invalidate(self) -> None:
        self._value = None
        self._dirty = True
        self.timestamp = None


__all__ = ["HierarchyCache"]
