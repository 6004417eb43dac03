"""
Bakery Notifications — Public API
===================================
Orders are saved first, announced second.
A failed announcement never un-saves an order.
"""

from core.events.dispatcher import NotificationDispatcher, deliver
from core.events.errors import (
    DuplicateNotifierError,
    InvalidNotifierError,
    NotificationError,
)
from core.events.registry import Notifier, NotifierRegistry

__all__ = [
    "deliver",
    "NotificationDispatcher",
    "Notifier",
    "NotifierRegistry",
    "NotificationError",
    "DuplicateNotifierError",
    "InvalidNotifierError",
]
