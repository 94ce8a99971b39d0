from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StockItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("track_inventory", models.BooleanField(default=True)),
                ("quantity", models.IntegerField(default=0)),
                ("allow_backorder", models.BooleanField(default=False)),
                ("low_stock_threshold", models.IntegerField(default=5)),
                ("total_sold", models.IntegerField(default=0)),
                ("total_revenue", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "product",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="stock", to="catalog.product"
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at", "id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gte=0), name="stock_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[("in", "Inbound"), ("out", "Outbound"), ("adjust", "Adjust")], max_length=16
                    ),
                ),
                ("quantity", models.IntegerField()),
                ("reason", models.CharField(blank=True, max_length=200)),
                ("reference", models.CharField(blank=True, db_index=True, max_length=120)),
                (
                    "stock_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="movements",
                        to="inventory.stockitem",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity", 0), _negated=True), name="movement_non_zero"
                    ),
                ],
            },
        ),
    ]
