"""
Bakery Django Adapter Wiring
============================
Constructs HttpApiDependencies from Django settings.

This module is adapter-only glue:
- DB-backed stores from core.fulfillment_store
- pricing and operational rules from BAKERY_* settings
- notifications dispatched on a background thread pool
"""

from __future__ import annotations

import threading

from django.conf import settings

from core.config.rules import rules_from_settings
from core.events.dispatcher import NotificationDispatcher
from core.fulfillment_store.stores import (
    DbCalendar,
    DbOrderRepository,
    DbPromoRepository,
    DbSlotCapacityStore,
)
from core.http_api.dependencies import HttpApiDependencies
from core.numbering.provider import RandomOrderNumberProvider
from core.time.clock import SystemClock
from engines.order.services import NullPaymentGateway, OrderLifecycleService
from engines.timeslot.services import TimeslotService

_DEPENDENCIES_LOCK = threading.Lock()
_DEPENDENCIES: HttpApiDependencies | None = None


def _bakery_settings() -> dict:
    return {
        name: getattr(settings, name)
        for name in dir(settings)
        if name.startswith("BAKERY_")
    }


def _create_dependencies() -> HttpApiDependencies:
    pricing_rules, fulfillment_settings = rules_from_settings(_bakery_settings())
    clock = SystemClock()

    calendar = DbCalendar()
    slots = DbSlotCapacityStore(calendar)
    orders = DbOrderRepository()
    promos = DbPromoRepository(clock=clock)

    timeslots = TimeslotService(
        store=slots, calendar=calendar, settings=fulfillment_settings,
    )
    lifecycle = OrderLifecycleService(
        orders=orders,
        slots=slots,
        calendar=calendar,
        promos=promos,
        gateway=NullPaymentGateway(),
        notifier=NotificationDispatcher(background=True),
        numbering=RandomOrderNumberProvider(
            prefix=fulfillment_settings.order_number_prefix,
            exists=orders.number_exists,
        ),
        rules=pricing_rules,
        settings=fulfillment_settings,
        clock=clock,
    )
    return HttpApiDependencies(orders=lifecycle, timeslots=timeslots)


def build_dependencies() -> HttpApiDependencies:
    """
    Lazy singleton wiring for adapter runtime.
    """
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        if _DEPENDENCIES is None:
            _DEPENDENCIES = _create_dependencies()
        return _DEPENDENCIES


def reset_dependencies() -> None:
    """Drop the cached wiring (settings overrides in tests)."""
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        _DEPENDENCIES = None
