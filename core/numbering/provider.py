"""
Bakery Numbering — Order Number Provider
===========================================
Draws a random suffix and guarantees the resulting order number
has never been issued before.

Doctrine:
- Provider is a dependency injection point (testable, swappable).
- Issuance is atomic: the uniqueness check and the reservation of
  the number happen under one lock.
- The in-process issued set covers only the current issue date; the
  date is part of every number, so older entries can never collide.
- An optional `exists` callback consults durable storage, so numbers
  stay unique across restarts and across service instances that
  share a database (the DB unique constraint is the final guard).
"""

from __future__ import annotations

import logging
import random
import secrets
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol, Set

from core.numbering.engine import SUFFIX_DIGITS, date_stamp, format_order_number

logger = logging.getLogger("bakery.numbering")


class OrderNumberExhausted(RuntimeError):
    """No free order number found within the attempt budget."""


class OrderNumberProvider(Protocol):
    def next_number(self, *, source: str, issued_at: datetime) -> str:
        """Return a never-before-issued order number."""
        ...


class RandomOrderNumberProvider:
    """
    Thread-safe order number provider.

    Suffixes are drawn from `rng` (defaults to the OS CSPRNG); tests
    pass a seeded random.Random for repeatable numbers.
    """

    def __init__(
        self,
        *,
        prefix: str = "PCP",
        exists: Optional[Callable[[str], bool]] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = 50,
    ):
        self._prefix = prefix
        self._exists = exists
        self._rng = rng
        self._max_attempts = max_attempts
        self._issued: Set[str] = set()
        self._issued_on: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def issued_count(self) -> int:
        return len(self._issued)

    def _draw(self) -> int:
        if self._rng is not None:
            return self._rng.randrange(10 ** SUFFIX_DIGITS)
        return secrets.randbelow(10 ** SUFFIX_DIGITS)

    def next_number(self, *, source: str, issued_at: datetime) -> str:
        with self._lock:
            stamp = date_stamp(issued_at)
            if stamp != self._issued_on:
                self._issued = set()
                self._issued_on = stamp
            for attempt in range(1, self._max_attempts + 1):
                candidate = format_order_number(
                    prefix=self._prefix, source=source,
                    issued_at=issued_at, suffix=self._draw(),
                )
                if candidate in self._issued:
                    continue
                if self._exists is not None and self._exists(candidate):
                    continue
                self._issued.add(candidate)
                if attempt > 1:
                    logger.debug(f"Order number {candidate} issued after {attempt} draws")
                return candidate
        raise OrderNumberExhausted(
            f"No free order number for source '{source}' after "
            f"{self._max_attempts} attempts."
        )
