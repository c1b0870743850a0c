import json

from django.core.serializers.json import DjangoJSONEncoder
from django.forms.models import model_to_dict

from tenancy.permissions import IsTenantRoleAllowed


def instance_payload(instance) -> dict:
    """JSON-safe snapshot of a model instance (used as audit before/after state)."""

    return json.loads(json.dumps(model_to_dict(instance), cls=DjangoJSONEncoder))


class TenantScopedAPIViewMixin:
    permission_classes = [IsTenantRoleAllowed]
    model = None
    ordering = ()

    @property
    def active_tenant_id(self):
        context = getattr(self.request, "security_context", None)
        return getattr(context, "active_tenant_id", None)

    def get_queryset(self):
        """Filter queryset by the active tenant (prevents cross-tenant data access)."""
        tenant_id = self.active_tenant_id
        if tenant_id is None:
            return self.model.all_objects.none()

        queryset = self.model.all_objects.filter(company_id=tenant_id)
        if self.ordering:
            return queryset.order_by(*self.ordering)
        return queryset

    def perform_create(self, serializer):
        return serializer.save(company_id=self.active_tenant_id)
