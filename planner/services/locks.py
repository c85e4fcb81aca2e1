from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol

logger = logging.getLogger(__name__)

Release = Callable[[], None]


class LockProvider(Protocol):
    def acquire(self, user_id: int) -> Release:
        ...


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class UserLockProvider:
    """Per-user mutual exclusion within one process.

    Passes for the same user serialize; different users never share a lock.
    An entry lives only while some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, _UserLock] = {}

    def acquire(self, user_id: int) -> Release:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _UserLock()
            entry.holders += 1
        if not entry.lock.acquire(blocking=False):
            logger.debug("Waiting for generation lock of user %s", user_id)
            entry.lock.acquire()
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[user_id]

        return release

    @property
    def tracked_users(self) -> int:
        with self._guard:
            return len(self._locks)


class NullLockProvider:
    def acquire(self, user_id: int) -> Release:
        return lambda: None


@contextmanager
def hold(provider: LockProvider, user_id: int) -> Iterator[None]:
    release = provider.acquire(user_id)
    try:
        yield
    finally:
        release()
