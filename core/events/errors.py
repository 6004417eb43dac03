"""
Bakery Notifications — Errors
===============================
Error types for notifier registration.
Delivery failures are never raised; they are logged and reported.
"""


class NotificationError(Exception):
    """Base error for notification wiring."""
    pass


class DuplicateNotifierError(NotificationError):
    """Same notifier name already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Notifier '{name}' is already registered.")


class InvalidNotifierError(NotificationError):
    """Registered object does not implement notify_status_change."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Notifier '{name}' must define a callable notify_status_change."
        )
