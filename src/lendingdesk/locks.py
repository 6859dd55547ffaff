"""Per-entity exclusion scopes for lending operations.

A borrow, return or payment holds the locks of every patron, item and fine it
touches for the whole read-validate-write sequence.
"""

import threading
import weakref
from contextlib import ExitStack, contextmanager
from typing import Any, Generator, Optional


def patron_key(patron_id: Optional[str]) -> Optional[str]:
    return f"patron:{patron_id}" if patron_id else None


def item_key(item_id: Optional[str]) -> Optional[str]:
    return f"item:{item_id}" if item_id else None


def fine_key(fine_id: Optional[str]) -> Optional[str]:
    return f"fine:{fine_id}" if fine_id else None


class KeyedLocks:
    """Registry of re-entrant locks keyed by entity.

    Entries are weak, so a key's lock is dropped once no scope holds it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, Any]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> Any:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, *keys: Optional[str]) -> Generator[None, None, None]:
        """Hold the locks for ``keys`` (None entries are ignored).

        Locks are taken in sorted order so two scopes over overlapping keys
        cannot deadlock.
        """
        locks = [self._lock_for(key) for key in sorted({key for key in keys if key})]
        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock)
            yield
