# cache.py
# SPDX-License-Identifier: MIT
"""Thread-safe cache of compiled license matchers."""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any, Dict, Tuple, TypeVar

from .log import get_logger

log = get_logger(__name__)

__all__ = ["MatcherCache", "CacheKey"]

V = TypeVar("V")

# (kind, id, corpus version), e.g. ("license", "MIT", "3.24").
CacheKey = Tuple[str, str, str]


class MatcherCache:
    """Get-or-compute cache shared by every matcher that is handed it.

    The factory runs outside the lock, so two threads asking for the same
    missing key may both compile it. Only the first result stored is kept
    and every caller, including the one whose work was discarded, gets
    that stored value back.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Any] = {}

    def get_or_compute(self, key: Hashable, factory: Callable[[], V]) -> V:
        with self._lock:
            if key in self._entries:
                return self._entries[key]
        value = factory()
        with self._lock:
            stored = self._entries.setdefault(key, value)
        if stored is value:
            log.debug("Cached matcher for %s", key)
        else:
            log.debug("Discarded duplicate matcher for %s", key)
        return stored

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
