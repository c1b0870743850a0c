# Generated manually. Keep in sync with commission/models/rule.py.

from decimal import Decimal

import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("insurer_id", models.PositiveBigIntegerField(db_index=True)),
                (
                    "insurance_type_id",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Empty means the rule applies to all insurance types.",
                        null=True,
                    ),
                ),
                (
                    "rate_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00")),
                            django.core.validators.MaxValueValidator(Decimal("100.00")),
                        ],
                    ),
                ),
                ("effective_from", models.DateField(default=django.utils.timezone.localdate)),
                ("effective_to", models.DateField(blank=True, null=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission_commissionrule_set",
                        to="accounts.company",
                    ),
                ),
            ],
            options={
                "verbose_name": "Commission Rule",
                "verbose_name_plural": "Commission Rules",
                "ordering": ("insurer_id", "insurance_type_id", "-effective_from", "id"),
            },
        ),
        migrations.AddConstraint(
            model_name="commissionrule",
            constraint=models.CheckConstraint(
                check=models.Q(("effective_to__isnull", True), ("effective_to__gte", models.F("effective_from")), _connector="OR"),
                name="ck_comm_rule_eff_range",
            ),
        ),
        migrations.AddIndex(
            model_name="commissionrule",
            index=models.Index(fields=("company", "insurer_id"), name="idx_comm_rule_company_insurer"),
        ),
    ]
