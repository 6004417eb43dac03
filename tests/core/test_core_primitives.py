"""
Tests for core.primitives — money, keyed locks and the order workflow.
"""

import threading
import time

import pytest
from decimal import Decimal

from core.primitives.fulfillment import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_NEW,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_READY,
    STATUS_REFUNDED,
)
from core.primitives.locks import KeyedLockRegistry, LockTimeout
from core.primitives.money import money_str, round_money, to_decimal, to_money
from core.primitives.workflow import ORDER_WORKFLOW


# ── Money Tests ──────────────────────────────────────────────

class TestMoney:
    def test_half_up_rounding(self):
        assert round_money(Decimal("4.125")) == Decimal("4.13")
        assert round_money(Decimal("4.124")) == Decimal("4.12")
        assert round_money(Decimal("0.005")) == Decimal("0.01")

    def test_float_goes_through_str(self):
        assert to_money(0.1) + to_money(0.2) == Decimal("0.30")

    def test_rejects_bool(self):
        with pytest.raises(ValueError, match="bool"):
            to_decimal(True)

    def test_rejects_garbage_string(self):
        with pytest.raises(ValueError, match="price"):
            to_money("abc", field_name="price")

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="finite"):
            to_decimal("NaN")

    def test_money_str(self):
        assert money_str(Decimal("59.1250")) == "59.13"
        assert money_str(Decimal("5")) == "5.00"


# ── KeyedLockRegistry Tests ──────────────────────────────────

class TestKeyedLockRegistry:
    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            KeyedLockRegistry(timeout=0)

    def test_hold_is_reentrant_across_calls(self):
        locks = KeyedLockRegistry(timeout=0.5)
        with locks.hold("a"):
            pass
        with locks.hold("a"):
            pass

    def test_duplicate_keys_are_deduplicated(self):
        locks = KeyedLockRegistry(timeout=0.5)
        with locks.hold("slot-1", "slot-1"):
            pass

    def test_times_out_when_key_is_held(self):
        locks = KeyedLockRegistry(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with locks.hold("slot-1"):
                held.set()
                done.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(LockTimeout) as exc_info:
                with locks.hold("slot-1"):
                    pass
            assert exc_info.value.key == "slot-1"
        finally:
            done.set()
            thread.join()

    def test_partial_acquisition_is_released_on_timeout(self):
        locks = KeyedLockRegistry(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with locks.hold("b"):
                held.set()
                done.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(LockTimeout):
                with locks.hold("a", "b"):
                    pass
            # "a" must have been released
            with locks.hold("a"):
                pass
        finally:
            done.set()
            thread.join()

    def test_opposite_order_does_not_deadlock(self):
        locks = KeyedLockRegistry(timeout=1.0)
        errors = []

        def worker(keys):
            try:
                for _ in range(50):
                    with locks.hold(*keys):
                        time.sleep(0)
            except LockTimeout as exc:
                errors.append(exc)

        threads = [
            threading.Thread(target=worker, args=(("x", "y"),)),
            threading.Thread(target=worker, args=(("y", "x"),)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []

    def test_released_keys_are_forgotten(self):
        locks = KeyedLockRegistry(timeout=0.5)
        for n in range(300):
            with locks.hold(f"order-{n}"):
                assert len(locks) == 1
        assert len(locks) == 0

    def test_key_stays_while_a_waiter_is_queued(self):
        locks = KeyedLockRegistry(timeout=1.0)
        held = threading.Event()
        release = threading.Event()
        waited = []

        def holder():
            with locks.hold("slot-1"):
                held.set()
                release.wait(2)

        def waiter():
            with locks.hold("slot-1"):
                waited.append(len(locks))

        first = threading.Thread(target=holder)
        first.start()
        held.wait(2)
        second = threading.Thread(target=waiter)
        second.start()
        time.sleep(0.05)
        release.set()
        first.join()
        second.join()

        assert waited == [1]
        assert len(locks) == 0

    def test_timed_out_caller_leaves_no_entry_behind(self):
        locks = KeyedLockRegistry(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with locks.hold("b"):
                held.set()
                done.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(LockTimeout):
                with locks.hold("a", "b"):
                    pass
            assert len(locks) == 1
        finally:
            done.set()
            thread.join()
        assert len(locks) == 0


# ── Order Workflow Tests ─────────────────────────────────────

class TestOrderWorkflow:
    def test_forward_sequence(self):
        assert ORDER_WORKFLOW.next_forward_state(STATUS_NEW) == STATUS_CONFIRMED
        assert ORDER_WORKFLOW.next_forward_state(STATUS_READY) == STATUS_OUT_FOR_DELIVERY
        assert ORDER_WORKFLOW.next_forward_state(STATUS_OUT_FOR_DELIVERY) == STATUS_COMPLETED

    def test_terminal_states_have_no_forward_step(self):
        for state in (STATUS_COMPLETED, STATUS_CANCELLED, STATUS_REFUNDED):
            assert ORDER_WORKFLOW.is_terminal(state)
            assert ORDER_WORKFLOW.next_forward_state(state) is None

    def test_no_skipping(self):
        assert not ORDER_WORKFLOW.is_valid_transition(STATUS_NEW, STATUS_READY)

    def test_exits(self):
        assert ORDER_WORKFLOW.is_valid_transition(STATUS_READY, STATUS_CANCELLED)
        assert ORDER_WORKFLOW.is_valid_transition(STATUS_COMPLETED, STATUS_REFUNDED)
        assert ORDER_WORKFLOW.is_valid_transition(STATUS_CANCELLED, STATUS_REFUNDED)
        assert not ORDER_WORKFLOW.is_valid_transition(STATUS_COMPLETED, STATUS_CANCELLED)
        assert not ORDER_WORKFLOW.is_valid_transition(STATUS_REFUNDED, STATUS_REFUNDED)
