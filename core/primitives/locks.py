"""
Bakery Concurrency Primitive — Keyed Lock Registry
====================================================
Serializes mutations per key (one slot, one promo code, one order)
instead of behind a single global lock.

Rules:
- One threading.Lock per key, created on first use
- Acquisition is bounded by a timeout (never queue indefinitely)
- Multi-key acquisition always happens in sorted key order, so two
  callers locking {A, B} and {B, A} can never deadlock
- Registry lock is held only for the dict lookup, never while waiting
- A key's lock is dropped once nobody holds or waits on it
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Tuple


class LockTimeout(Exception):
    """Key lock could not be acquired within the timeout."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Could not acquire lock for '{key}' within {timeout}s.")


class KeyedLockRegistry:
    """Thread-safe registry of per-key locks."""

    def __init__(self, *, timeout: float = 2.0):
        if timeout <= 0:
            raise ValueError("timeout must be positive.")
        self._timeout = timeout
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}
        self._registry_lock = threading.Lock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: str) -> None:
        with self._registry_lock:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """
        Acquire the locks for all keys (deduplicated, sorted).

        Raises LockTimeout if any lock is not acquired in time;
        locks already taken are released before raising.
        """
        ordered = sorted(set(keys))
        checked_out: List[str] = []
        acquired: List[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                if not lock.acquire(timeout=self._timeout):
                    raise LockTimeout(key, self._timeout)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in reversed(checked_out):
                self._checkin(key)
