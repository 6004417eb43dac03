"""
Tests for core.events — notifier registry and fire-and-forget dispatch.
"""

import threading
from types import SimpleNamespace

import pytest

from core.events import (
    DuplicateNotifierError,
    InvalidNotifierError,
    NotificationDispatcher,
    NotifierRegistry,
    deliver,
)


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify_status_change(self, order, status):
        self.calls.append((order.order_number, status))


class ExplodingNotifier:
    def notify_status_change(self, order, status):
        raise RuntimeError("smtp down")


ORDER = SimpleNamespace(order_number="PCP-WEB-20261019-0001")


# ── Registry Tests ───────────────────────────────────────────

class TestNotifierRegistry:
    def test_register_and_list(self):
        registry = NotifierRegistry()
        notifier = RecordingNotifier()
        registry.register("email", notifier)
        assert registry.get_notifiers() == [("email", notifier)]
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        registry = NotifierRegistry()
        registry.register("email", RecordingNotifier())
        with pytest.raises(DuplicateNotifierError, match="email"):
            registry.register("email", RecordingNotifier())

    def test_invalid_notifier_rejected(self):
        registry = NotifierRegistry()
        with pytest.raises(InvalidNotifierError):
            registry.register("sms", object())

    def test_unregister(self):
        registry = NotifierRegistry()
        registry.register("email", RecordingNotifier())
        registry.unregister("email")
        registry.unregister("never-registered")
        assert len(registry) == 0


# ── Delivery Tests ───────────────────────────────────────────

class TestDeliver:
    def test_no_notifiers(self):
        result = deliver(ORDER, "READY", NotifierRegistry())
        assert result["notified"] == 0
        assert result["failed"] == 0

    def test_failure_does_not_stop_other_notifiers(self):
        registry = NotifierRegistry()
        good = RecordingNotifier()
        registry.register("broken", ExplodingNotifier())
        registry.register("email", good)

        result = deliver(ORDER, "READY", registry)

        assert result["notified"] == 1
        assert result["failed"] == 1
        assert result["failures"][0]["notifier"] == "broken"
        assert result["failures"][0]["error_type"] == "RuntimeError"
        assert good.calls == [("PCP-WEB-20261019-0001", "READY")]


class TestNotificationDispatcher:
    def test_inline_mode(self):
        registry = NotifierRegistry()
        notifier = RecordingNotifier()
        registry.register("email", notifier)
        dispatcher = NotificationDispatcher(registry, background=False)

        assert dispatcher.dispatch_status_change(ORDER, "CONFIRMED") is None
        assert notifier.calls == [("PCP-WEB-20261019-0001", "CONFIRMED")]

    def test_background_mode_does_not_block_caller(self):
        release = threading.Event()

        class SlowNotifier:
            def notify_status_change(self, order, status):
                release.wait(2)

        registry = NotifierRegistry()
        registry.register("slow", SlowNotifier())
        dispatcher = NotificationDispatcher(registry, background=True, max_workers=1)
        try:
            future = dispatcher.dispatch_status_change(ORDER, "READY")
            assert future is not None
            assert not future.done()
            release.set()
            assert future.result(timeout=2)["notified"] == 1
        finally:
            release.set()
            dispatcher.shutdown()

    def test_background_failure_is_reported_not_raised(self):
        registry = NotifierRegistry()
        registry.register("broken", ExplodingNotifier())
        dispatcher = NotificationDispatcher(registry, background=True)
        try:
            result = dispatcher.dispatch_status_change(ORDER, "READY").result(timeout=2)
            assert result["failed"] == 1
        finally:
            dispatcher.shutdown()

    def test_dispatch_after_shutdown_is_dropped(self):
        dispatcher = NotificationDispatcher(background=True)
        dispatcher.shutdown()
        assert dispatcher.dispatch_status_change(ORDER, "READY") is None
