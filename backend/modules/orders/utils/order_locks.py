# backend/modules/orders/utils/order_locks.py

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Tuple


class KeyedLockRegistry:
    """
    In-process locks keyed by resource, e.g. ``("order", 12)``.

    Serialises concurrent requests from terminals served by the same
    process. Cross-process races are caught by the optimistic version
    columns instead.

    A lock lives only while some thread holds or waits on it; the entry is
    dropped when its last user leaves.
    """

    def __init__(self):
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._users: Dict[Hashable, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: Hashable):
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        """Acquire every lock in a stable order and release them on exit"""
        ordered = sorted(set(k for k in keys if k is not None), key=repr)
        acquired: List[Tuple[Hashable, threading.RLock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)


order_locks = KeyedLockRegistry()


def order_key(order_id: int):
    return ("order", order_id)


def table_key(table_id: int):
    return ("table", table_id) if table_id is not None else None
