"""
Bakery HTTP API - Dependencies
==============================
Services the handlers call, injected by the framework adapter.
"""

from __future__ import annotations

from dataclasses import dataclass

from engines.order.services import OrderLifecycleService
from engines.timeslot.services import TimeslotService


@dataclass(frozen=True)
class HttpApiDependencies:
    orders: OrderLifecycleService
    timeslots: TimeslotService
