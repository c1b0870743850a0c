from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from tenancy.models import BaseTenantModel


class CommissionRule(BaseTenantModel):
    """Effective-dated commission rate for an insurer, scoped per tenant.

    `insurance_type_id` NULL means the rule applies to every insurance type of the
    insurer. Overlapping rules are allowed here; the resolver decides which one wins.
    """

    insurer_id = models.PositiveBigIntegerField(db_index=True)
    insurance_type_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Empty means the rule applies to all insurance types.",
    )
    rate_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))],
    )
    effective_from = models.DateField(default=timezone.localdate)
    effective_to = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ("insurer_id", "insurance_type_id", "-effective_from", "id")
        verbose_name = "Commission Rule"
        verbose_name_plural = "Commission Rules"
        constraints = [
            models.CheckConstraint(
                check=Q(effective_to__isnull=True) | Q(effective_to__gte=F("effective_from")),
                name="ck_comm_rule_eff_range",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "insurer_id"),
                name="idx_comm_rule_company_insurer",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        type_label = self.insurance_type_id or "*"
        return f"insurer={self.insurer_id} type={type_label} {self.rate_percentage}%"

    @property
    def applies_to_all_types(self) -> bool:
        return self.insurance_type_id is None

    def clean(self):
        super().clean()
        if self.effective_to and self.effective_from and self.effective_to < self.effective_from:
            raise ValidationError({"effective_to": "effective_to must be on or after effective_from."})
