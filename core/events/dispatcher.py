"""
Bakery Notifications — Dispatcher
===================================
Delivers order status changes to registered notifiers.

Dispatch behavior:
1. Snapshot the registered notifiers
2. Hand delivery to a background executor (or run inline)
3. Catch notifier exceptions per notifier
4. Log failure
5. Continue to next notifier
6. NEVER roll back or block the order mutation

Notifier failure must NOT:
- Break delivery to other notifiers
- Propagate into the order lifecycle
- Alter the persisted order

Dispatch happens after the order is saved.
State must exist before it is announced.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Optional

from core.events.registry import NotifierRegistry

logger = logging.getLogger("bakery.notifications")


def deliver(order: Any, status: str, registry: NotifierRegistry) -> dict:
    """
    Deliver one status change to every registered notifier.

    Returns:
        {
            'order_number': str,
            'status': str,
            'notified': int,
            'failed': int,
            'failures': list[dict]
        }

    This function NEVER raises exceptions.
    """
    order_number = str(getattr(order, "order_number", ""))
    result = {
        "order_number": order_number,
        "status": status,
        "notified": 0,
        "failed": 0,
        "failures": [],
    }

    notifiers = registry.get_notifiers()
    if not notifiers:
        logger.debug(f"No notifiers for {order_number} → {status}")
        return result

    for name, notifier in notifiers:
        try:
            notifier.notify_status_change(order, status)
            result["notified"] += 1
        except Exception as exc:
            result["failed"] += 1
            result["failures"].append({
                "notifier": name,
                "error": str(exc),
                "error_type": type(exc).__name__,
            })
            logger.error(
                f"Notifier failed: {name} for {order_number} → {status}: {exc}",
                exc_info=True,
            )

    logger.info(
        f"Notification complete: {order_number} → {status} — "
        f"{result['notified']} notified, {result['failed']} failed"
    )
    return result


class NotificationDispatcher:
    """
    Fire-and-forget front for `deliver`.

    With `background=True` delivery runs on a ThreadPoolExecutor so the
    caller never waits on a slow notifier. With `background=False`
    delivery runs inline (tests, management commands).
    """

    def __init__(
        self,
        registry: Optional[NotifierRegistry] = None,
        *,
        background: bool = True,
        max_workers: int = 4,
        executor: Optional[Executor] = None,
    ):
        self.registry = registry if registry is not None else NotifierRegistry()
        self._executor: Optional[Executor] = None
        if background:
            self._executor = executor or ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="bakery-notify",
            )

    def dispatch_status_change(self, order: Any, status: str) -> Optional[Future]:
        """Schedule delivery. Returns the Future in background mode, else None."""
        if self._executor is None:
            deliver(order, status, self.registry)
            return None
        try:
            return self._executor.submit(deliver, order, status, self.registry)
        except RuntimeError as exc:
            # Executor already shut down.
            logger.error(f"Notification dropped for {status}: {exc}")
            return None

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
