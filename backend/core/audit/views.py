from rest_framework.response import Response
from rest_framework.views import APIView

from audit.models import AuditLogEntry
from audit.serializers import AuditLogEntrySerializer, ChainVerificationSerializer
from audit.services import verify_chain
from tenancy.permissions import IsTenantRoleAllowed


class AuditLogEntryListAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "audit_log"

    def get(self, request):
        try:
            limit = int(request.query_params.get("limit", "200"))
        except ValueError:
            limit = 200
        limit = max(1, min(limit, 1000))

        entries = AuditLogEntry.all_objects.filter(
            company_id=request.security_context.active_tenant_id,
        )
        entity_type = (request.query_params.get("entity_type") or "").strip()
        if entity_type:
            entries = entries.filter(entity_type=entity_type)
        entity_id = (request.query_params.get("entity_id") or "").strip()
        if entity_id.isdigit():
            entries = entries.filter(entity_id=int(entity_id))

        entries = entries.order_by("-occurred_at", "-id")[:limit]
        return Response(AuditLogEntrySerializer(entries, many=True).data)


class AuditChainVerifyAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "audit_log"

    def get(self, request):
        chain_id = f"tenant:{request.security_context.active_tenant_id}"
        result = verify_chain(chain_id)
        return Response(ChainVerificationSerializer(result).data)
