"""
Tests for the pricing engine — cart lines and order totals.
"""

import pytest
from decimal import Decimal

from core.commands.errors import InvalidDiscount, ValidationError
from core.commands.rejection import ReasonCode
from core.config.rules import PricingRules
from engines.pricing.commands import AddonLine, LineItem
from engines.pricing.services import compute, compute_subtotal, free_item_discount

RULES = PricingRules(tax_rate=Decimal("0.0825"), delivery_fee=Decimal("5.00"))


def _line(price="12.00", qty=1, addons=()):
    return LineItem(product_id="cookie", quantity=qty, unit_price=Decimal(price), addons=addons)


# ── LineItem Tests ───────────────────────────────────────────

class TestLineItem:
    def test_total_includes_addons_per_unit(self):
        item = _line("4.00", qty=3, addons=(AddonLine("frosting", Decimal("0.50")),))
        assert item.unit_total == Decimal("4.50")
        assert item.total_price == Decimal("13.50")

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _line(qty=0)
        assert exc_info.value.code == ReasonCode.INVALID_QUANTITY

    def test_bool_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _line(qty=True)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _line(price="-1.00")
        assert exc_info.value.code == ReasonCode.INVALID_PRICE

    def test_from_dict(self):
        item = LineItem.from_dict({
            "product_id": "brownie",
            "quantity": 2,
            "unit_price": "3.25",
            "addons": [{"addon_id": "nuts", "price": "0.75"}],
        })
        assert item.total_price == Decimal("8.00")
        assert item.to_dict()["addons"][0]["addon_id"] == "nuts"


# ── Compute Tests ────────────────────────────────────────────

class TestCompute:
    def test_delivery_order_with_discount(self):
        breakdown = compute(
            [_line("60.00")], "DELIVERY", Decimal("10.00"), rules=RULES,
        )
        assert breakdown.subtotal == Decimal("60.00")
        assert breakdown.discount_amount == Decimal("10.00")
        assert breakdown.tax_amount == Decimal("4.13")
        assert breakdown.delivery_fee == Decimal("5.00")
        assert breakdown.total_amount == Decimal("59.13")

    def test_pickup_has_no_delivery_fee(self):
        breakdown = compute([_line("10.00")], "PICKUP", rules=RULES)
        assert breakdown.delivery_fee == Decimal("0.00")
        assert breakdown.tax_amount == Decimal("0.83")
        assert breakdown.total_amount == Decimal("10.83")

    def test_tip_is_not_taxed(self):
        breakdown = compute(
            [_line("10.00")], "WALKIN", tip_amount=Decimal("2.00"), rules=RULES,
        )
        assert breakdown.tax_amount == Decimal("0.83")
        assert breakdown.total_amount == Decimal("12.83")

    def test_full_discount_is_allowed(self):
        breakdown = compute([_line("10.00")], "PICKUP", Decimal("10.00"), rules=RULES)
        assert breakdown.tax_amount == Decimal("0.00")
        assert breakdown.total_amount == Decimal("0.00")

    def test_discount_above_subtotal(self):
        with pytest.raises(InvalidDiscount):
            compute([_line("10.00")], "PICKUP", Decimal("10.01"), rules=RULES)

    def test_negative_discount(self):
        with pytest.raises(InvalidDiscount):
            compute([_line("10.00")], "PICKUP", Decimal("-1"), rules=RULES)

    def test_negative_tip(self):
        with pytest.raises(ValidationError):
            compute([_line("10.00")], "PICKUP", tip_amount=Decimal("-1"), rules=RULES)

    def test_unknown_fulfillment_type(self):
        with pytest.raises(ValidationError, match="fulfillment_type"):
            compute([_line()], "DRONE", rules=RULES)

    def test_empty_cart(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_subtotal([])
        assert exc_info.value.code == ReasonCode.EMPTY_CART

    def test_deterministic(self):
        items = [_line("3.33", qty=3), _line("1.11", qty=7)]
        first = compute(items, "DELIVERY", Decimal("1.00"), rules=RULES)
        second = compute(items, "DELIVERY", Decimal("1.00"), rules=RULES)
        assert first == second
        assert first.to_dict()["total_amount"] == str(first.total_amount)


class TestFreeItemDiscount:
    def test_cheapest_unit_with_addons(self):
        items = [
            _line("12.00"),
            _line("3.00", qty=4, addons=(AddonLine("sprinkles", Decimal("0.25")),)),
        ]
        assert free_item_discount(items) == Decimal("3.25")

    def test_empty(self):
        assert free_item_discount([]) == Decimal("0.00")
