from django.conf import settings

from audit.services import AuditRecorder, action_for_method
from tenancy.mixins import instance_payload


def _extract_ip(request) -> str:
    """Peer address; X-Forwarded-For only counts behind a trusted proxy."""

    meta = getattr(request, "META", {}) or {}
    if getattr(settings, "AUDIT_TRUST_FORWARDED_FOR", False):
        forwarded_for = (meta.get("HTTP_X_FORWARDED_FOR") or "").strip()
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return (meta.get("REMOTE_ADDR") or "").strip()


def _request_payload(request):
    data = getattr(request, "data", None)
    if hasattr(data, "dict"):
        return data.dict()
    return data


class AuditedAPIViewMixin:
    """Records CREATE/UPDATE/DELETE outcomes of a DRF view in the audit log.

    Only successful (< 400) mutating requests of an authenticated user are recorded.
    """

    audit_entity_type = None
    audit_lookup_kwarg = "pk"
    audit_recorder_class = AuditRecorder

    def get_audit_entity_type(self) -> str:
        if self.audit_entity_type:
            return self.audit_entity_type
        model = getattr(self, "model", None)
        if model is not None:
            return model._meta.label
        return self.__class__.__name__

    def perform_update(self, serializer):
        self.audit_previous_values = instance_payload(serializer.instance)
        return super().perform_update(serializer)

    def perform_destroy(self, instance):
        self.audit_previous_values = instance_payload(instance)
        return super().perform_destroy(instance)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        self._record_audit(request, response, kwargs)
        return response

    def _record_audit(self, request, response, view_kwargs):
        if action_for_method(request.method) is None or response.status_code >= 400:
            return

        user = getattr(request, "user", None)
        actor_user_id = user.pk if user is not None and user.is_authenticated else None
        context = getattr(request, "security_context", None)

        self.audit_recorder_class().record(
            actor_user_id=actor_user_id,
            method_class=request.method,
            entity_type=self.get_audit_entity_type(),
            entity_id=view_kwargs.get(self.audit_lookup_kwarg),
            payload=_request_payload(request),
            result_payload=getattr(response, "data", None),
            previous_values=getattr(self, "audit_previous_values", None),
            succeeded=response.status_code < 400,
            company_id=getattr(context, "active_tenant_id", None),
            actor_username=getattr(user, "username", "") if actor_user_id is not None else "",
            ip_address=_extract_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            correlation_id=getattr(request, "correlation_id", ""),
            request_method=request.method,
            request_path=request.path,
        )
