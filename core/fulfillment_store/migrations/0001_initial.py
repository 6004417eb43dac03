from django.db import migrations, models


FULFILLMENT_TYPES = [("PICKUP", "Pickup"), ("DELIVERY", "Delivery"), ("WALKIN", "Walk-in")]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Timeslot",
            fields=[
                ("slot_id", models.CharField(max_length=36, primary_key=True, serialize=False)),
                ("slot_date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("fulfillment_type", models.CharField(choices=FULFILLMENT_TYPES, max_length=16)),
                ("max_capacity", models.PositiveIntegerField()),
                ("reserved_count", models.PositiveIntegerField(default=0)),
                ("is_blocked", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "bakery_timeslots",
                "ordering": ["slot_date", "start_time", "fulfillment_type"],
                "indexes": [
                    models.Index(fields=["slot_date", "fulfillment_type"], name="idx_slot_date_type"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("slot_date", "start_time", "fulfillment_type"),
                        name="uq_slot_identity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StoreHours",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("weekday", models.PositiveSmallIntegerField(unique=True)),
                ("open_time", models.TimeField()),
                ("close_time", models.TimeField()),
                ("is_closed", models.BooleanField(default=False)),
            ],
            options={
                "db_table": "bakery_store_hours",
                "ordering": ["weekday"],
            },
        ),
        migrations.CreateModel(
            name="BlackoutDate",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("blackout_date", models.DateField(unique=True)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "db_table": "bakery_blackout_dates",
                "ordering": ["blackout_date"],
            },
        ),
        migrations.CreateModel(
            name="Promo",
            fields=[
                ("code", models.CharField(max_length=50, primary_key=True, serialize=False)),
                (
                    "promo_type",
                    models.CharField(
                        choices=[
                            ("PERCENTAGE", "Percentage"),
                            ("FIXED_AMOUNT", "Fixed amount"),
                            ("FREE_ITEM", "Free item"),
                        ],
                        max_length=16,
                    ),
                ),
                ("value", models.DecimalField(decimal_places=2, max_digits=10)),
                ("min_order_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("max_uses", models.PositiveIntegerField(blank=True, null=True)),
                ("max_uses_per_user", models.PositiveIntegerField(blank=True, null=True)),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "db_table": "bakery_promos",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="PromoRedemption",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("code", models.CharField(max_length=50)),
                ("order_id", models.CharField(max_length=36)),
                ("customer_id", models.CharField(blank=True, max_length=255, null=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("redeemed_at", models.DateTimeField()),
            ],
            options={
                "db_table": "bakery_promo_redemptions",
                "ordering": ["code", "redeemed_at", "id"],
                "indexes": [
                    models.Index(fields=["code", "customer_id"], name="idx_redemption_customer"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("code", "order_id"), name="uq_redemption_order"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("order_id", models.CharField(max_length=36, primary_key=True, serialize=False)),
                ("order_number", models.CharField(max_length=40, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("NEW", "New"),
                            ("CONFIRMED", "Confirmed"),
                            ("IN_PRODUCTION", "In production"),
                            ("READY", "Ready"),
                            ("OUT_FOR_DELIVERY", "Out for delivery"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                            ("REFUNDED", "Refunded"),
                        ],
                        max_length=20,
                    ),
                ),
                ("fulfillment_type", models.CharField(choices=FULFILLMENT_TYPES, max_length=16)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("STRIPE_CARD", "Card (online)"),
                            ("STRIPE_TERMINAL", "Card (terminal)"),
                            ("CASH", "Cash"),
                            ("COMP", "Complimentary"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("web", "Web"), ("phone", "Phone"), ("pos", "POS")],
                        max_length=8,
                    ),
                ),
                ("is_paid", models.BooleanField(default=False)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("payment_reference", models.CharField(blank=True, max_length=255, null=True)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=10)),
                ("discount_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("tax_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("delivery_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("tip_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("refunded_amount", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("promo_code", models.CharField(blank=True, max_length=50, null=True)),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                ("slot_id", models.CharField(blank=True, max_length=36, null=True)),
                ("customer_id", models.CharField(blank=True, max_length=255, null=True)),
                ("guest_email", models.CharField(blank=True, max_length=255, null=True)),
                ("guest_first_name", models.CharField(blank=True, max_length=50, null=True)),
                ("guest_last_name", models.CharField(blank=True, max_length=50, null=True)),
                ("guest_phone", models.CharField(blank=True, max_length=20, null=True)),
                ("delivery_address", models.CharField(blank=True, max_length=500, null=True)),
                ("delivery_zip", models.CharField(blank=True, max_length=10, null=True)),
                ("delivery_notes", models.CharField(blank=True, max_length=500, null=True)),
                ("production_notes", models.TextField(blank=True, default="")),
                ("packaging_checklist", models.JSONField(blank=True, default=dict)),
                ("assigned_baker_id", models.CharField(blank=True, max_length=255, null=True)),
                ("refund_reason", models.CharField(blank=True, max_length=500, null=True)),
                ("cancel_reason", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                ("version", models.PositiveIntegerField(default=1)),
                ("history", models.JSONField(blank=True, default=list)),
            ],
            options={
                "db_table": "bakery_orders",
                "ordering": ["created_at", "order_id"],
                "indexes": [
                    models.Index(fields=["status"], name="idx_order_status"),
                    models.Index(fields=["scheduled_date"], name="idx_order_scheduled"),
                    models.Index(fields=["slot_id"], name="idx_order_slot"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("position", models.PositiveIntegerField()),
                ("product_id", models.CharField(max_length=64)),
                ("variant_id", models.CharField(blank=True, max_length=64, null=True)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("addons", models.JSONField(blank=True, default=list)),
                ("note", models.CharField(blank=True, max_length=500, null=True)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "order",
                    models.ForeignKey(
                        db_column="order_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="items",
                        to="core_fulfillment_store.order",
                    ),
                ),
            ],
            options={
                "db_table": "bakery_order_items",
                "ordering": ["order_id", "position"],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "position"), name="uq_order_item_position"),
                ],
            },
        ),
    ]
