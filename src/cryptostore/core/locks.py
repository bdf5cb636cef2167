"""Per-entry mutual exclusion for a single CryptoStorage instance.

Locks are created when a key is first requested and dropped again once no
thread holds or waits for them, so the registry only ever tracks keys that
are currently in use.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._locks: Dict[str, List] = {}

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the ``with`` block."""
        with self._guard:
            slot = self._locks.get(key)
            if slot is None:
                slot = [threading.Lock(), 0]
                self._locks[key] = slot
            slot[1] += 1

        slot[0].acquire()
        try:
            yield
        finally:
            slot[0].release()
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
