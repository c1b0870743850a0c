import logging

from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.mixins import AuditedAPIViewMixin
from commission.models import CommissionRule
from commission.serializers import CommissionRuleSerializer, RateQuerySerializer
from commission.services import (
    AmbiguousRule,
    CommissionRuleResolver,
    InvalidCommissionQuery,
    NoApplicableRate,
    quote_commission,
)
from tenancy.mixins import TenantScopedAPIViewMixin
from tenancy.permissions import IsTenantRoleAllowed

logger = logging.getLogger(__name__)

NO_APPLICABLE_RATE = "NO_APPLICABLE_RATE"
RESOLVED = "RESOLVED"


class CommissionRuleListCreateAPIView(
    TenantScopedAPIViewMixin, AuditedAPIViewMixin, generics.ListCreateAPIView
):
    model = CommissionRule
    serializer_class = CommissionRuleSerializer
    tenant_resource_key = "commission_rules"
    audit_entity_type = "commission.CommissionRule"
    ordering = ("insurer_id", "insurance_type_id", "-effective_from", "id")

    def get_queryset(self):
        queryset = super().get_queryset()
        insurer_id = (self.request.query_params.get("insurer_id") or "").strip()
        if insurer_id.isdigit():
            queryset = queryset.filter(insurer_id=int(insurer_id))
        return queryset


class CommissionRuleDetailAPIView(
    TenantScopedAPIViewMixin, AuditedAPIViewMixin, generics.RetrieveUpdateDestroyAPIView
):
    model = CommissionRule
    serializer_class = CommissionRuleSerializer
    tenant_resource_key = "commission_rules"
    audit_entity_type = "commission.CommissionRule"


class CommissionRateResolveAPIView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "commission_rates"

    def get(self, request):
        query = RateQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        tenant_id = request.security_context.active_tenant_id

        try:
            result = quote_commission(
                tenant_id,
                params["insurer_id"],
                params.get("base_amount") or 0,
                insurance_type_id=params.get("insurance_type_id"),
                on_date=params.get("on_date"),
                override_rate=params.get("override_rate"),
                resolver=CommissionRuleResolver(),
            )
        except AmbiguousRule as exc:
            return Response(
                {"detail": str(exc), "code": "ambiguous_rule", "rule_ids": list(exc.rule_ids)},
                status=status.HTTP_409_CONFLICT,
            )
        except InvalidCommissionQuery as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if isinstance(result, NoApplicableRate):
            logger.info(
                "commission.rate.not_found company_id=%s insurer_id=%s insurance_type_id=%s on_date=%s",
                tenant_id,
                result.insurer_id,
                result.insurance_type_id,
                result.on_date.isoformat(),
            )
            return Response(
                {
                    "outcome": NO_APPLICABLE_RATE,
                    "insurer_id": result.insurer_id,
                    "insurance_type_id": result.insurance_type_id,
                    "on_date": result.on_date.isoformat(),
                }
            )

        payload = {
            "outcome": RESOLVED,
            "insurer_id": params["insurer_id"],
            "insurance_type_id": params.get("insurance_type_id"),
            "rate_percentage": str(result.rate_percentage),
            "rule_id": result.rule_id,
        }
        if params.get("base_amount") is not None:
            payload["base_amount"] = str(result.base_amount)
            payload["commission_amount"] = str(result.amount)
        return Response(payload)
