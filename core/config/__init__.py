"""
Bakery Core Config — Public API
==================================
Admin-configurable pricing rules and operational settings.
Doctrine: No hardcoded rates in engine logic.
"""

from core.config.rules import (
    FulfillmentSettings,
    PricingRules,
    rules_from_settings,
)

__all__ = [
    "PricingRules",
    "FulfillmentSettings",
    "rules_from_settings",
]
