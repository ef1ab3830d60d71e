"""Keyed mutual exclusion: one lock per key, created on demand."""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLock:
    """
    Serialize work per key while letting different keys run in parallel.

    Locks are reference counted and dropped once nobody holds or waits on
    them, so the table does not grow with every key ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._refs: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the with-block."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._refs[key] = self._refs.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._refs[key] -= 1
                if self._refs[key] == 0:
                    del self._refs[key]
                    del self._locks[key]

    def is_held(self, key: str) -> bool:
        """True while some thread holds (or waits on) the lock for ``key``."""
        with self._guard:
            return key in self._locks

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
