import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryMovement",
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
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("in", "Stock in"),
                            ("out", "Stock out"),
                            ("adjustment", "Adjustment"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("previous_stock", models.PositiveIntegerField()),
                ("new_stock", models.PositiveIntegerField()),
                ("reason", models.CharField(max_length=255)),
                (
                    "reference_type",
                    models.CharField(
                        choices=[
                            ("order", "Order"),
                            ("purchase", "Purchase"),
                            ("adjustment", "Adjustment"),
                            ("return", "Return"),
                        ],
                        max_length=20,
                    ),
                ),
                ("reference_id", models.BigIntegerField(blank=True, null=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_movements",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_movements",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["product"], name="inv_mov_product_idx"),
                    models.Index(fields=["type"], name="inv_mov_type_idx"),
                    models.Index(
                        fields=["reference_type", "reference_id"],
                        name="inv_mov_reference_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 1)),
                        name="inv_mov_quantity_positive",
                    )
                ],
            },
        ),
    ]
