"""
Per-key mutual exclusion.

Used to serialize the read-increment-write of author counters per author
name within one process. Entries are dropped once nobody holds or waits on
them, so the map only grows with concurrently contended keys.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Hashable


class KeyedLock:
    """A map of locks created on demand, one per key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[Hashable, list] = {}  # key -> [lock, holders + waiters]

    @contextmanager
    def hold(self, key: Hashable) -> Generator[None, None, None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every pipeline in the process
author_counter_locks = KeyedLock()
