from django.core.exceptions import ValidationError
from django.db import models

from tenancy.context import get_current_tenant_id
from tenancy.managers import TenantManager


class BaseTenantModel(models.Model):
    company = models.ForeignKey(
        "accounts.Company",
        on_delete=models.PROTECT,
        related_name="%(app_label)s_%(class)s_set",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def _enforce_company_scope(self):
        current_tenant_id = get_current_tenant_id()

        if self.company_id is None and current_tenant_id is not None:
            self.company_id = current_tenant_id

        if self.company_id is None:
            raise ValidationError("company is required.")

        if current_tenant_id is not None and self.company_id != current_tenant_id:
            raise ValidationError(
                "Cross-tenant write blocked: resource company does not match request tenant."
            )

    def save(self, *args, **kwargs):
        self._enforce_company_scope()
        return super().save(*args, **kwargs)
