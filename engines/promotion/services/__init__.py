"""
Bakery Promotion Engine — Application Service
================================================
PromoValidator: side-effect-free eligibility check → PromoDiscount.
PromoRepository: storage of promos and the redemption ledger.

Usage is committed only by `redeem`, an atomic compare-and-increment
that re-checks the caps. Two checkouts racing for the last use of a
code can both validate, but only one can redeem.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Protocol, Tuple

from core.commands.errors import PromoRejected
from core.commands.rejection import ReasonCode
from core.primitives.locks import KeyedLockRegistry, LockTimeout
from core.primitives.money import round_money, to_money
from core.time.clock import Clock, SystemClock
from engines.promotion.commands import (
    PROMO_FIXED_AMOUNT,
    PROMO_FREE_ITEM,
    PROMO_PERCENTAGE,
    PromoDiscount,
    PromoRecord,
    PromoRedemption,
    normalize_code,
)
from engines.promotion.policies import (
    promo_customer_limit_policy,
    promo_minimum_order_policy,
    promo_must_be_active_policy,
    promo_must_exist_policy,
    promo_usage_limit_policy,
    promo_window_policy,
)

logger = logging.getLogger("bakery.promotions")


class PromoRepository(Protocol):
    def get_by_code(self, code: str) -> Optional[PromoRecord]: ...

    def count_redemptions(self, code: str, customer_id: str) -> int: ...

    def redeem(
        self, code: str, order_id: str, customer_id: Optional[str], amount: Decimal,
    ) -> PromoRedemption: ...

    def release_redemption(self, code: str, order_id: str) -> bool: ...


def discount_for(promo: PromoRecord, subtotal: Decimal) -> PromoDiscount:
    if promo.promo_type == PROMO_PERCENTAGE:
        amount = round_money(subtotal * promo.value / Decimal("100"))
        return PromoDiscount(promo.code, promo.promo_type, min(amount, subtotal))
    if promo.promo_type == PROMO_FIXED_AMOUNT:
        return PromoDiscount(promo.code, promo.promo_type, min(to_money(promo.value), subtotal))
    return PromoDiscount(promo.code, PROMO_FREE_ITEM, is_free_item=True)


class PromoValidator:
    def __init__(self, repository: PromoRepository, *, clock: Clock | None = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def validate(
        self,
        code: str,
        subtotal,
        customer_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PromoDiscount:
        """Raises PromoRejected carrying the first failing policy's reason."""
        try:
            normalized = normalize_code(code)
        except ValueError as exc:
            raise PromoRejected(str(exc), code=ReasonCode.PROMO_NOT_FOUND) from exc
        subtotal = to_money(subtotal, field_name="subtotal")
        now = now or self._clock.now_utc()

        promo = self._repository.get_by_code(normalized)
        rejection = promo_must_exist_policy(promo, normalized)
        if rejection is None:
            rejection = (
                promo_must_be_active_policy(promo)
                or promo_window_policy(promo, now)
                or promo_minimum_order_policy(promo, subtotal)
                or promo_usage_limit_policy(promo)
            )
        if rejection is None and customer_id is not None:
            rejection = promo_customer_limit_policy(
                promo, customer_id,
                self._repository.count_redemptions(normalized, customer_id),
            )

        if rejection is not None:
            logger.info(f"Promo {normalized} rejected: {rejection.code}")
            raise PromoRejected.from_reason(rejection)

        return discount_for(promo, subtotal)


# ══════════════════════════════════════════════════════════════
# IN-MEMORY REPOSITORY
# ══════════════════════════════════════════════════════════════

class InMemoryPromoRepository:
    """
    Thread-safe promo store. One lock per promo code; redemptions
    of different codes never wait on each other.
    """

    def __init__(self, *, lock_timeout: float = 2.0, clock: Clock | None = None):
        self._promos: Dict[str, PromoRecord] = {}
        self._redemptions: Dict[Tuple[str, str], PromoRedemption] = {}
        self._locks = KeyedLockRegistry(timeout=lock_timeout)
        self._clock = clock or SystemClock()

    def add(self, promo: PromoRecord) -> PromoRecord:
        with self._locks.hold(promo.code):
            self._promos[promo.code] = promo
        return promo

    def get_by_code(self, code: str) -> Optional[PromoRecord]:
        return self._promos.get(normalize_code(code))

    def count_redemptions(self, code: str, customer_id: str) -> int:
        code = normalize_code(code)
        return sum(
            1 for r in list(self._redemptions.values())
            if r.code == code and r.customer_id == customer_id
        )

    def redeem(
        self, code: str, order_id: str, customer_id: Optional[str], amount,
    ) -> PromoRedemption:
        code = normalize_code(code)
        try:
            with self._locks.hold(code):
                existing = self._redemptions.get((code, order_id))
                if existing is not None:
                    return existing

                promo = self._promos.get(code)
                rejection = promo_must_exist_policy(promo, code) or promo_usage_limit_policy(promo)
                if rejection is None and customer_id is not None:
                    rejection = promo_customer_limit_policy(
                        promo, customer_id, self.count_redemptions(code, customer_id),
                    )
                if rejection is not None:
                    raise PromoRejected.from_reason(rejection)

                redemption = PromoRedemption(
                    code=code, order_id=order_id, customer_id=customer_id,
                    amount=to_money(amount), redeemed_at=self._clock.now_utc(),
                )
                self._promos[code] = _with_used_count(promo, promo.used_count + 1)
                self._redemptions[(code, order_id)] = redemption
        except LockTimeout as exc:
            raise PromoRejected(
                f"Promo code '{code}' is busy, please retry.", code=ReasonCode.PROMO_BUSY,
            ) from exc

        logger.debug(f"Promo {code} redeemed for order {order_id}")
        return redemption

    def release_redemption(self, code: str, order_id: str) -> bool:
        code = normalize_code(code)
        with self._locks.hold(code):
            redemption = self._redemptions.pop((code, order_id), None)
            if redemption is None:
                return False
            promo = self._promos.get(code)
            if promo is not None:
                self._promos[code] = _with_used_count(promo, max(promo.used_count - 1, 0))
        logger.info(f"Promo {code} redemption released for order {order_id}")
        return True


def _with_used_count(promo: PromoRecord, used_count: int) -> PromoRecord:
    return replace(promo, used_count=used_count)
