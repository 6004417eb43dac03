"""
Tests for the promotion engine — validation, redemption and release.
"""

import threading

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from core.commands.errors import PromoRejected
from core.commands.rejection import ReasonCode
from core.time.clock import FixedClock
from engines.promotion.commands import (
    PROMO_FIXED_AMOUNT,
    PROMO_FREE_ITEM,
    PROMO_PERCENTAGE,
    PromoRecord,
    normalize_code,
)
from engines.promotion.policies import promo_customer_limit_policy
from engines.promotion.services import (
    InMemoryPromoRepository,
    PromoValidator,
    discount_for,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _desert10(**overrides):
    fields = dict(
        code="DESERT10",
        promo_type=PROMO_FIXED_AMOUNT,
        value=Decimal("10"),
        min_order_amount=Decimal("50"),
    )
    fields.update(overrides)
    return PromoRecord(**fields)


def _setup(*promos):
    clock = FixedClock(NOW)
    repo = InMemoryPromoRepository(clock=clock)
    for promo in promos:
        repo.add(promo)
    return repo, PromoValidator(repo, clock=clock)


# ── PromoRecord Tests ────────────────────────────────────────

class TestPromoRecord:
    def test_code_is_normalized(self):
        assert _desert10(code="  desert10 ").code == "DESERT10"

    def test_percentage_above_100_rejected(self):
        with pytest.raises(ValueError, match="<= 100"):
            PromoRecord(code="HALF", promo_type=PROMO_PERCENTAGE, value=Decimal("150"))

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="promo_type"):
            PromoRecord(code="X", promo_type="BOGO", value=Decimal("1"))

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            _desert10(starts_at=NOW, expires_at=NOW - timedelta(days=1))

    def test_blank_code_rejected(self):
        with pytest.raises(ValueError):
            normalize_code("   ")


# ── Validation Tests ─────────────────────────────────────────

class TestPromoValidator:
    def test_below_minimum(self):
        _, validator = _setup(_desert10())
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("40.00"))
        assert exc_info.value.code == ReasonCode.PROMO_BELOW_MINIMUM

    def test_fixed_amount(self):
        _, validator = _setup(_desert10())
        discount = validator.validate("desert10", Decimal("60.00"))
        assert discount.code == "DESERT10"
        assert discount.amount == Decimal("10.00")

    def test_unknown_code(self):
        _, validator = _setup()
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("NOPE", Decimal("10"))
        assert exc_info.value.code == ReasonCode.PROMO_NOT_FOUND

    def test_inactive(self):
        _, validator = _setup(_desert10(is_active=False))
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("60"))
        assert exc_info.value.code == ReasonCode.PROMO_INACTIVE

    def test_not_started_and_expired(self):
        _, validator = _setup(
            _desert10(code="SOON", starts_at=NOW + timedelta(days=1)),
            _desert10(code="GONE", expires_at=NOW - timedelta(seconds=1)),
        )
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("SOON", Decimal("60"))
        assert exc_info.value.code == ReasonCode.PROMO_NOT_STARTED
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("GONE", Decimal("60"))
        assert exc_info.value.code == ReasonCode.PROMO_EXPIRED

    def test_exhausted(self):
        _, validator = _setup(_desert10(max_uses=5, used_count=5))
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("60"))
        assert exc_info.value.code == ReasonCode.PROMO_EXHAUSTED

    def test_first_failing_policy_wins(self):
        # Inactive and below minimum: inactive is checked first.
        _, validator = _setup(_desert10(is_active=False))
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("1"))
        assert exc_info.value.code == ReasonCode.PROMO_INACTIVE

    def test_minimum_is_checked_before_usage_cap(self):
        _, validator = _setup(_desert10(max_uses=5, used_count=5))
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("40"))
        assert exc_info.value.code == ReasonCode.PROMO_BELOW_MINIMUM

    def test_customer_limit(self):
        repo, validator = _setup(_desert10(max_uses_per_user=1))
        repo.redeem("DESERT10", "order-1", "cust-1", Decimal("10"))
        with pytest.raises(PromoRejected) as exc_info:
            validator.validate("DESERT10", Decimal("60"), customer_id="cust-1")
        assert exc_info.value.code == ReasonCode.PROMO_CUSTOMER_LIMIT
        # Another customer is unaffected
        validator.validate("DESERT10", Decimal("60"), customer_id="cust-2")

    def test_guest_is_not_capped_per_customer(self):
        assert promo_customer_limit_policy(_desert10(max_uses_per_user=1), None, 99) is None

    def test_validation_has_no_side_effects(self):
        repo, validator = _setup(_desert10(max_uses=1))
        validator.validate("DESERT10", Decimal("60"))
        validator.validate("DESERT10", Decimal("60"))
        assert repo.get_by_code("DESERT10").used_count == 0


class TestDiscountFor:
    def test_percentage_rounds_half_up(self):
        promo = PromoRecord(code="P", promo_type=PROMO_PERCENTAGE, value=Decimal("15"))
        assert discount_for(promo, Decimal("10.10")).amount == Decimal("1.52")

    def test_fixed_amount_capped_at_subtotal(self):
        assert discount_for(_desert10(min_order_amount=None), Decimal("4.00")).amount == Decimal("4.00")

    def test_free_item_is_flagged(self):
        promo = PromoRecord(code="TREAT", promo_type=PROMO_FREE_ITEM, value=Decimal("0"))
        discount = discount_for(promo, Decimal("20"))
        assert discount.is_free_item
        assert discount.amount == Decimal("0.00")


# ── Redemption Tests ─────────────────────────────────────────

class TestRedemption:
    def test_redeem_increments_used_count(self):
        repo, _ = _setup(_desert10())
        redemption = repo.redeem("DESERT10", "order-1", None, Decimal("10"))
        assert redemption.redeemed_at == NOW
        assert repo.get_by_code("DESERT10").used_count == 1

    def test_redeem_is_idempotent_per_order(self):
        repo, _ = _setup(_desert10())
        first = repo.redeem("DESERT10", "order-1", None, Decimal("10"))
        second = repo.redeem("DESERT10", "order-1", None, Decimal("10"))
        assert first == second
        assert repo.get_by_code("DESERT10").used_count == 1

    def test_redeem_rechecks_usage_limit(self):
        repo, _ = _setup(_desert10(max_uses=1))
        repo.redeem("DESERT10", "order-1", None, Decimal("10"))
        with pytest.raises(PromoRejected) as exc_info:
            repo.redeem("DESERT10", "order-2", None, Decimal("10"))
        assert exc_info.value.code == ReasonCode.PROMO_EXHAUSTED

    def test_release(self):
        repo, _ = _setup(_desert10())
        repo.redeem("DESERT10", "order-1", "cust-1", Decimal("10"))
        assert repo.release_redemption("DESERT10", "order-1") is True
        assert repo.get_by_code("DESERT10").used_count == 0
        assert repo.count_redemptions("DESERT10", "cust-1") == 0
        assert repo.release_redemption("DESERT10", "order-1") is False

    def test_racing_for_last_use(self):
        repo, _ = _setup(_desert10(max_uses=3))
        successes = []
        rejections = []
        barrier = threading.Barrier(12)

        def worker(n):
            barrier.wait()
            try:
                repo.redeem("DESERT10", f"order-{n}", None, Decimal("10"))
                successes.append(n)
            except PromoRejected:
                rejections.append(n)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(12)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 3
        assert len(rejections) == 9
        assert repo.get_by_code("DESERT10").used_count == 3
