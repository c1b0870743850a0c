import uuid

from django.conf import settings

from tenancy.context import reset_current_context, set_current_context


class TenantContextMiddleware:
    """Request-scoped plumbing for tenant resolution.

    - Propagates (or creates) the `X-Correlation-ID` header.
    - Exposes the requested tenant hint (`X-Tenant-ID`) as `request.requested_tenant_id`.
    - Starts every request with an empty security context and restores the previous
      value once the response is produced, so no context survives the request.

    The SecurityContext itself is resolved after DRF authentication
    (see `tenancy.permissions`), because token users are unknown at this point.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.tenant_id_header = getattr(settings, "TENANT_ID_HEADER", "X-Tenant-ID")

    def __call__(self, request):
        request.correlation_id = self._resolve_correlation_id(request)
        request.requested_tenant_id = (request.headers.get(self.tenant_id_header, "") or "").strip() or None
        request.security_context = None

        token = set_current_context(None)
        try:
            response = self.get_response(request)
            response["X-Correlation-ID"] = request.correlation_id
            return response
        finally:
            reset_current_context(token)

    @staticmethod
    def _resolve_correlation_id(request) -> str:
        header_value = (request.headers.get("X-Correlation-ID", "") or "").strip()
        return header_value or str(uuid.uuid4())
