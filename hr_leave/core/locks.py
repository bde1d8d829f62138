"""
Keyed in-process locks.

Serializes work on a single logical row (a leave request, an employee's
approved-leave set, a balance key, an employee's attendance day) across the
worker threads of one process. Row locks at the database level
(SELECT ... FOR UPDATE, unique constraints) cover multi-process deployments.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Tuple


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock, waiters = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, waiters + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                lock, waiters = self._locks[key]
                if waiters <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, waiters - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Process-wide registries
leave_request_locks = KeyedLocks()
employee_leave_locks = KeyedLocks()
balance_locks = KeyedLocks()
attendance_locks = KeyedLocks()
