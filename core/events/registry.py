"""
Bakery Notifications — Notifier Registry
===========================================
Controls which notifiers hear order status changes
(customer email, SMS, kitchen display, ...).

Rules:
- Notifiers are registered by unique name
- Duplicate names forbidden
- In-memory only (no DB, no files)
- Thread-safe
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Protocol, Tuple

from core.events.errors import DuplicateNotifierError, InvalidNotifierError

logger = logging.getLogger("bakery.notifications")


class Notifier(Protocol):
    def notify_status_change(self, order: Any, status: str) -> None:
        """Deliver a status-change message for an order snapshot."""
        ...


class NotifierRegistry:
    """In-memory registry of named notifiers, in registration order."""

    def __init__(self):
        self._notifiers: Dict[str, Notifier] = {}
        self._lock = Lock()

    def register(self, name: str, notifier: Notifier) -> None:
        if not callable(getattr(notifier, "notify_status_change", None)):
            raise InvalidNotifierError(name)

        with self._lock:
            if name in self._notifiers:
                raise DuplicateNotifierError(name)
            self._notifiers[name] = notifier

        logger.info(f"Notifier registered: {name}")

    def unregister(self, name: str) -> None:
        with self._lock:
            self._notifiers.pop(name, None)

    def get_notifiers(self) -> List[Tuple[str, Notifier]]:
        """Snapshot of (name, notifier) pairs; empty list is not an error."""
        with self._lock:
            return list(self._notifiers.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._notifiers)
