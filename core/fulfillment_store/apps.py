"""
Bakery Fulfillment Store - App Configuration
============================================
Persistent slots, calendar, promos and orders.
"""

from django.apps import AppConfig


class CoreFulfillmentStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.fulfillment_store"
    label = "core_fulfillment_store"
    verbose_name = "Bakery Fulfillment Store"
