from django.db import models

from tenancy.context import get_current_tenant_id


class TenantQuerySet(models.QuerySet):
    def for_company(self, company_id):
        return self.filter(company_id=company_id)


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    def get_queryset(self):
        queryset = super().get_queryset()
        tenant_id = get_current_tenant_id()
        if tenant_id is None:
            return queryset.none()
        return queryset.filter(company_id=tenant_id)

    def unsafe_all(self):
        return super().get_queryset()
