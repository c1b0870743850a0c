import logging

from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from tenancy.context import SecurityContext, set_current_context
from tenancy.rbac import DEFAULT_TENANT_ROLE_MATRIX, get_role_matrix_for_resource, role_can
from tenancy.resolver import AuthorizationContextResolver, AuthorizationError, UserNotFound

logger = logging.getLogger(__name__)


def resolve_request_context(request, resolver=None) -> SecurityContext:
    """Resolve (once) and bind the SecurityContext of an authenticated request."""

    context = getattr(request, "security_context", None)
    if context is not None:
        return context

    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        raise exceptions.NotAuthenticated()

    resolver = resolver or AuthorizationContextResolver()
    try:
        context = resolver.resolve(user.pk, getattr(request, "requested_tenant_id", None))
    except AuthorizationError as exc:
        logger.warning(
            "tenancy.context.rejected",
            extra={
                "correlation_id": getattr(request, "correlation_id", ""),
                "user_id": user.pk,
                "requested_tenant_id": getattr(request, "requested_tenant_id", None),
                "reason": exc.code,
                "path": getattr(request, "path", ""),
            },
        )
        if isinstance(exc, UserNotFound):
            raise exceptions.AuthenticationFailed(detail=str(exc), code=exc.code) from exc
        raise exceptions.PermissionDenied(detail=str(exc), code=exc.code) from exc

    request.security_context = context
    set_current_context(context)
    return context


class HasTenantContext(BasePermission):
    message = "User has no usable tenant context."

    def has_permission(self, request, view):
        resolve_request_context(request)
        return True


class IsTenantRoleAllowed(BasePermission):
    message = "User role is not allowed for this action in the current tenant."

    def has_permission(self, request, view):
        context = resolve_request_context(request)
        if context.active_tenant_id is None:
            self.message = "An active tenant is required. Send X-Tenant-ID."
            return False

        role_matrix = getattr(view, "tenant_role_matrix", None)
        if role_matrix is None:
            resource_key = getattr(view, "tenant_resource_key", None)
            if resource_key:
                role_matrix = get_role_matrix_for_resource(resource_key)
            else:
                role_matrix = DEFAULT_TENANT_ROLE_MATRIX

        return role_can(role_matrix, context.effective_role, request.method)
