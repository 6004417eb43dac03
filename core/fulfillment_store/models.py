"""
Bakery Fulfillment Store - Relational State
===========================================
Timeslot capacity, store calendar, promo usage ledger and orders.

Counters (reserved_count, used_count) are only ever changed with
conditional F() updates; see core/fulfillment_store/stores.py.
"""

from __future__ import annotations

from django.db import models


class FulfillmentType(models.TextChoices):
    PICKUP = "PICKUP", "Pickup"
    DELIVERY = "DELIVERY", "Delivery"
    WALKIN = "WALKIN", "Walk-in"


class OrderStatus(models.TextChoices):
    NEW = "NEW", "New"
    CONFIRMED = "CONFIRMED", "Confirmed"
    IN_PRODUCTION = "IN_PRODUCTION", "In production"
    READY = "READY", "Ready"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for delivery"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentMethod(models.TextChoices):
    STRIPE_CARD = "STRIPE_CARD", "Card (online)"
    STRIPE_TERMINAL = "STRIPE_TERMINAL", "Card (terminal)"
    CASH = "CASH", "Cash"
    COMP = "COMP", "Complimentary"


class OrderSource(models.TextChoices):
    WEB = "web", "Web"
    PHONE = "phone", "Phone"
    POS = "pos", "POS"


class PromoType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed amount"
    FREE_ITEM = "FREE_ITEM", "Free item"


class Timeslot(models.Model):
    slot_id = models.CharField(primary_key=True, max_length=36)
    slot_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    fulfillment_type = models.CharField(max_length=16, choices=FulfillmentType.choices)
    max_capacity = models.PositiveIntegerField()
    reserved_count = models.PositiveIntegerField(default=0)
    is_blocked = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "bakery_timeslots"
        ordering = ["slot_date", "start_time", "fulfillment_type"]
        indexes = [
            models.Index(fields=["slot_date", "fulfillment_type"], name="idx_slot_date_type"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["slot_date", "start_time", "fulfillment_type"],
                name="uq_slot_identity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.slot_date} {self.start_time} {self.fulfillment_type}"


class StoreHours(models.Model):
    weekday = models.PositiveSmallIntegerField(unique=True)
    open_time = models.TimeField()
    close_time = models.TimeField()
    is_closed = models.BooleanField(default=False)

    class Meta:
        db_table = "bakery_store_hours"
        ordering = ["weekday"]

    def __str__(self) -> str:
        return f"{self.weekday}: {'closed' if self.is_closed else f'{self.open_time}-{self.close_time}'}"


class BlackoutDate(models.Model):
    blackout_date = models.DateField(unique=True)
    reason = models.CharField(max_length=255, default="", blank=True)

    class Meta:
        db_table = "bakery_blackout_dates"
        ordering = ["blackout_date"]

    def __str__(self) -> str:
        return str(self.blackout_date)


class Promo(models.Model):
    code = models.CharField(primary_key=True, max_length=50)
    promo_type = models.CharField(max_length=16, choices=PromoType.choices)
    value = models.DecimalField(max_digits=10, decimal_places=2)
    min_order_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    max_uses_per_user = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    description = models.CharField(max_length=255, default="", blank=True)

    class Meta:
        db_table = "bakery_promos"
        ordering = ["code"]

    def __str__(self) -> str:
        return self.code


class PromoRedemption(models.Model):
    code = models.CharField(max_length=50)
    order_id = models.CharField(max_length=36)
    customer_id = models.CharField(max_length=255, null=True, blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    redeemed_at = models.DateTimeField()

    class Meta:
        db_table = "bakery_promo_redemptions"
        ordering = ["code", "redeemed_at", "id"]
        indexes = [
            models.Index(fields=["code", "customer_id"], name="idx_redemption_customer"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["code", "order_id"], name="uq_redemption_order"),
        ]

    def __str__(self) -> str:
        return f"{self.code}:{self.order_id}"


class Order(models.Model):
    order_id = models.CharField(primary_key=True, max_length=36)
    order_number = models.CharField(max_length=40, unique=True)
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    fulfillment_type = models.CharField(max_length=16, choices=FulfillmentType.choices)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    source = models.CharField(max_length=8, choices=OrderSource.choices)
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=255, null=True, blank=True)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2)
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2)
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    refunded_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    promo_code = models.CharField(max_length=50, null=True, blank=True)

    scheduled_date = models.DateField(null=True, blank=True)
    slot_id = models.CharField(max_length=36, null=True, blank=True)

    customer_id = models.CharField(max_length=255, null=True, blank=True)
    guest_email = models.CharField(max_length=255, null=True, blank=True)
    guest_first_name = models.CharField(max_length=50, null=True, blank=True)
    guest_last_name = models.CharField(max_length=50, null=True, blank=True)
    guest_phone = models.CharField(max_length=20, null=True, blank=True)
    delivery_address = models.CharField(max_length=500, null=True, blank=True)
    delivery_zip = models.CharField(max_length=10, null=True, blank=True)
    delivery_notes = models.CharField(max_length=500, null=True, blank=True)

    production_notes = models.TextField(default="", blank=True)
    packaging_checklist = models.JSONField(default=dict, blank=True)
    assigned_baker_id = models.CharField(max_length=255, null=True, blank=True)
    refund_reason = models.CharField(max_length=500, null=True, blank=True)
    cancel_reason = models.CharField(max_length=500, null=True, blank=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()
    version = models.PositiveIntegerField(default=1)
    history = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "bakery_orders"
        ordering = ["created_at", "order_id"]
        indexes = [
            models.Index(fields=["status"], name="idx_order_status"),
            models.Index(fields=["scheduled_date"], name="idx_order_scheduled"),
            models.Index(fields=["slot_id"], name="idx_order_slot"),
        ]

    def __str__(self) -> str:
        return self.order_number


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="items",
        db_column="order_id",
    )
    position = models.PositiveIntegerField()
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, null=True, blank=True)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    addons = models.JSONField(default=list, blank=True)
    note = models.CharField(max_length=500, null=True, blank=True)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "bakery_order_items"
        ordering = ["order_id", "position"]
        constraints = [
            models.UniqueConstraint(fields=["order", "position"], name="uq_order_item_position"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}#{self.position} {self.product_id} x{self.quantity}"
